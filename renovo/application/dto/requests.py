"""Request DTOs for API endpoints.

Pydantic v2 models for API request validation.
These are the ONLY contracts between API and use cases.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, model_validator

from renovo.core.entities import (
    Currency,
    DiscountAppliesTo,
    DiscountType,
    InvoiceType,
    ItemCategory,
    PaymentTerms,
    ProjectPhase,
    RecurringFrequency,
    TaxType,
)


class LineItemRequest(BaseModel):
    """Line item as submitted by the client. Amounts are always derived."""

    description: str = Field(..., min_length=1, max_length=500)
    quantity: Decimal = Field(default=Decimal("1"), ge=0)
    unit: str = Field(default="each", max_length=50)
    rate: Decimal = Field(default=Decimal("0"), ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0, description="Flat discount on this line")
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, description="Per-line tax percent")
    category: ItemCategory = ItemCategory.OTHER
    project_phase: ProjectPhase = ProjectPhase.OTHER
    job_code: str | None = None
    notes: str | None = None


class TaxEntryRequest(BaseModel):
    """Invoice-level tax. Amount is derived from rate when omitted."""

    name: str = Field(..., min_length=1, max_length=100, examples=["State sales tax"])
    rate: Decimal = Field(default=Decimal("0"), ge=0)
    amount: Decimal | None = Field(default=None, ge=0)
    type: TaxType = TaxType.SALES


class DiscountRequest(BaseModel):
    """Invoice-wide discount policy."""

    type: DiscountType = DiscountType.PERCENTAGE
    value: Decimal = Field(default=Decimal("0"), ge=0)
    applies_to: DiscountAppliesTo = DiscountAppliesTo.SUBTOTAL
    reason: str | None = None

    @model_validator(mode="after")
    def check_percentage(self) -> "DiscountRequest":
        if self.type == DiscountType.PERCENTAGE and self.value > 100:
            raise ValueError("percentage discount cannot exceed 100")
        return self


class RecurringPatternRequest(BaseModel):
    """Recurrence schedule for a recurring invoice."""

    frequency: RecurringFrequency
    interval: int = Field(default=1, ge=1, le=365)
    day_of_month: int | None = Field(default=None, ge=1, le=31)
    day_of_week: int | None = Field(default=None, ge=0, le=6, description="0 = Monday")
    end_date: date | None = None
    max_occurrences: int | None = Field(default=None, ge=1)


class CreateInvoiceRequest(BaseModel):
    """Request to create an invoice.

    The number is allocated from the prefix/year counter when omitted.
    The due date is derived from payment terms when omitted.
    """

    invoice_number: str | None = Field(
        default=None,
        max_length=50,
        examples=["INV-2024-001"],
    )
    purchase_order_number: str | None = Field(default=None, max_length=50)
    type: InvoiceType = InvoiceType.STANDARD
    client_id: str = Field(..., min_length=1, description="Client reference")
    project_id: str | None = None
    issue_date: date | None = None
    due_date: date | None = None
    start_date: date | None = None
    end_date: date | None = None
    currency: Currency | None = None
    items: list[LineItemRequest] = Field(default_factory=list)
    taxes: list[TaxEntryRequest] = Field(default_factory=list)
    discount: DiscountRequest | None = None
    payment_terms: PaymentTerms | None = None
    is_recurring: bool = False
    recurring_pattern: RecurringPatternRequest | None = None
    notes: str | None = Field(default=None, max_length=2000)
    terms: str | None = None
    tags: list[str] = Field(default_factory=list)
    recipient_emails: list[str] = Field(default_factory=list)
    created_by: str | None = None

    @model_validator(mode="after")
    def check_recurrence(self) -> "CreateInvoiceRequest":
        if self.is_recurring and self.recurring_pattern is None:
            raise ValueError("recurring invoices require a recurring_pattern")
        return self


class UpdateInvoiceRequest(BaseModel):
    """Partial update of editable invoice fields.

    ``version`` enables an optimistic check against the caller's copy.
    """

    purchase_order_number: str | None = Field(default=None, max_length=50)
    project_id: str | None = None
    due_date: date | None = None
    start_date: date | None = None
    end_date: date | None = None
    items: list[LineItemRequest] | None = None
    taxes: list[TaxEntryRequest] | None = None
    discount: DiscountRequest | None = None
    payment_terms: PaymentTerms | None = None
    is_recurring: bool | None = None
    recurring_pattern: RecurringPatternRequest | None = None
    notes: str | None = Field(default=None, max_length=2000)
    terms: str | None = None
    tags: list[str] | None = None
    recipient_emails: list[str] | None = None
    version: int | None = Field(default=None, ge=0)
    updated_by: str | None = None

    def changed_fields(self) -> dict[str, Any]:
        """Fields the client actually sent, minus bookkeeping."""
        return self.model_dump(exclude_unset=True, exclude={"version", "updated_by"})


class RecordPaymentRequest(BaseModel):
    """Request to record a payment against an invoice."""

    amount: Decimal = Field(..., description="Must be positive and within the balance")
    method: str | None = Field(default=None, examples=["bank-transfer", "check"])
    date: datetime | None = None
    reference: str | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None, max_length=500)
    recorded_by: str | None = None


class SendInvoiceRequest(BaseModel):
    recipients: list[str] = Field(default_factory=list)
    sent_by: str | None = None


class CancelInvoiceRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)
    cancelled_by: str | None = None


class GenerateRecurringRequest(BaseModel):
    created_by: str | None = None
