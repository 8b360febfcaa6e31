"""
Invoice domain entities with Pydantic v2 validation.

Money is carried as Decimal. Numeric inputs are coerced before validation
so that None/empty values never reach arithmetic.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(v: Any) -> Decimal:
    """Convert None/empty/float/str to Decimal, defaulting to zero."""
    if v is None or v == "":
        return ZERO
    if isinstance(v, Decimal):
        return v
    if isinstance(v, bool):
        raise ValueError("boolean is not a monetary value")
    if isinstance(v, int):
        return Decimal(v)
    if isinstance(v, float):
        # str() keeps the shortest repr, so 0.1 stays 0.1
        return Decimal(str(v))
    try:
        s = str(v).strip().replace(",", "")
        if s.lower() in {"none", "null", ""}:
            return ZERO
        return Decimal(s)
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"invalid numeric value: {v!r}") from e


class InvoiceStatus(str, Enum):
    """Invoice document status."""

    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Payment state derived from totals and due date."""

    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    FAILED = "failed"


class InvoiceType(str, Enum):
    STANDARD = "standard"
    DEPOSIT = "deposit"
    PROGRESS = "progress"
    FINAL = "final"
    CREDIT = "credit"
    RECURRING = "recurring"


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"
    AUD = "AUD"
    CHF = "CHF"
    JPY = "JPY"
    CNY = "CNY"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CHECK = "check"
    CREDIT_CARD = "credit-card"
    BANK_TRANSFER = "bank-transfer"
    PAYPAL = "paypal"
    STRIPE = "stripe"
    OTHER = "other"


class PaymentTerms(str, Enum):
    NET_15 = "net-15"
    NET_30 = "net-30"
    NET_45 = "net-45"
    NET_60 = "net-60"
    DUE_ON_RECEIPT = "due-on-receipt"
    FIFTY_UPFRONT = "50-upfront"
    CUSTOM = "custom"


class ItemCategory(str, Enum):
    LABOR = "labor"
    MATERIALS = "materials"
    EQUIPMENT = "equipment"
    PERMITS = "permits"
    CONSULTING = "consulting"
    DESIGN = "design"
    OTHER = "other"


class ProjectPhase(str, Enum):
    PLANNING = "planning"
    DESIGN = "design"
    DEMOLITION = "demolition"
    CONSTRUCTION = "construction"
    FINISHING = "finishing"
    INSPECTION = "inspection"
    DELIVERY = "delivery"
    OTHER = "other"


class TaxType(str, Enum):
    SALES = "sales"
    SERVICE = "service"
    VAT = "vat"
    OTHER = "other"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class DiscountAppliesTo(str, Enum):
    SUBTOTAL = "subtotal"
    TOTAL = "total"
    SPECIFIC = "specific"


class RecurringFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMI_ANNUALLY = "semi-annually"
    ANNUALLY = "annually"


class HistoryAction(str, Enum):
    """Audit trail action."""

    CREATED = "created"
    MODIFIED = "modified"
    SENT = "sent"
    VIEWED = "viewed"
    PAYMENT_RECEIVED = "payment_received"
    PAID = "paid"
    VOIDED = "voided"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"


class LineItem(BaseModel):
    """
    Invoice line item.

    ``amount`` and ``tax_amount`` are always derived from quantity, rate,
    discount and tax_rate.
    """

    id: int | None = None
    description: str
    quantity: Decimal = Field(default=Decimal("1"), ge=0)
    unit: str = "each"
    rate: Decimal = Field(default=ZERO, ge=0)
    discount: Decimal = Field(default=ZERO, ge=0)
    tax_rate: Decimal = Field(default=ZERO, ge=0)
    amount: Decimal = ZERO
    tax_amount: Decimal = ZERO
    category: ItemCategory = ItemCategory.OTHER
    project_phase: ProjectPhase = ProjectPhase.OTHER
    job_code: str | None = None
    notes: str | None = None

    @field_validator("quantity", "rate", "discount", "tax_rate", "amount", "tax_amount", mode="before")
    @classmethod
    def coerce_numeric(cls, v: Any) -> Decimal:
        return to_decimal(v)

    @field_validator("description", mode="before")
    @classmethod
    def coerce_string(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()

    @model_validator(mode="after")
    def compute_line(self) -> "LineItem":
        """Compute amount and per-line tax."""
        gross = self.quantity * self.rate
        self.amount = max(ZERO, gross - self.discount)
        self.tax_amount = self.amount * self.tax_rate / HUNDRED
        return self


class TaxEntry(BaseModel):
    """
    Invoice-level tax line, independent of per-line tax rates.

    ``amount`` is a fixed amount set by the caller. Without one, the tax is
    derived from ``rate`` on every recompute and the result is kept in
    ``computed_amount``.
    """

    id: int | None = None
    name: str
    rate: Decimal = Field(default=ZERO, ge=0)
    amount: Decimal | None = Field(default=None, ge=0)
    computed_amount: Decimal | None = Field(default=None, ge=0)
    type: TaxType = TaxType.SALES

    @field_validator("rate", mode="before")
    @classmethod
    def coerce_rate(cls, v: Any) -> Decimal:
        return to_decimal(v)

    @field_validator("amount", "computed_amount", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> Decimal | None:
        if v is None or v == "":
            return None
        return to_decimal(v)


class DiscountPolicy(BaseModel):
    """Single invoice-wide discount."""

    type: DiscountType = DiscountType.PERCENTAGE
    value: Decimal = Field(default=ZERO, ge=0)
    applies_to: DiscountAppliesTo = DiscountAppliesTo.SUBTOTAL
    reason: str | None = None

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, v: Any) -> Decimal:
        return to_decimal(v)


class Payment(BaseModel):
    """A recorded payment. Never edited once appended."""

    id: int | None = None
    amount: Decimal = Field(gt=0)
    date: datetime = Field(default_factory=datetime.utcnow)
    method: PaymentMethod
    reference: str | None = None
    notes: str | None = None
    recorded_by: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> Decimal:
        return to_decimal(v)


class RecurringPattern(BaseModel):
    """Schedule for regenerating an invoice."""

    frequency: RecurringFrequency | None = None
    interval: int = Field(default=1, ge=1)
    day_of_month: int | None = Field(default=None, ge=1, le=31)
    day_of_week: int | None = Field(default=None, ge=0, le=6)  # 0 = Monday
    end_date: date | None = None
    max_occurrences: int | None = Field(default=None, ge=1)
    occurrences: int = Field(default=0, ge=0)
    next_due_date: date | None = None


class HistoryEntry(BaseModel):
    """Append-only audit trail entry."""

    id: int | None = None
    action: HistoryAction
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    user: str | None = None
    details: str | None = None
    changes: dict[str, Any] = Field(default_factory=dict)


class Invoice(BaseModel):
    """
    Invoice aggregate root.

    Monetary fields are derived by the ledger engine
    (``renovo.core.services.invoice_ledger``); callers never set them directly.
    """

    id: int | None = None
    invoice_number: str | None = None
    purchase_order_number: str | None = None
    type: InvoiceType = InvoiceType.STANDARD

    # Dates
    issue_date: date = Field(default_factory=date.today)
    due_date: date
    start_date: date | None = None
    end_date: date | None = None

    # Status
    status: InvoiceStatus = InvoiceStatus.DRAFT
    payment_status: PaymentStatus = PaymentStatus.PENDING

    # Relationships (ids only)
    client_id: str
    project_id: str | None = None
    created_by: str | None = None
    sent_by: str | None = None

    # Money
    currency: Currency = Currency.USD
    subtotal: Decimal = ZERO
    tax_amount: Decimal = ZERO
    discount_amount: Decimal = ZERO
    total_amount: Decimal = ZERO
    paid_amount: Decimal = ZERO
    balance_amount: Decimal = ZERO

    items: list[LineItem] = Field(default_factory=list)
    taxes: list[TaxEntry] = Field(default_factory=list)
    discount: DiscountPolicy = Field(default_factory=DiscountPolicy)
    payments: list[Payment] = Field(default_factory=list)

    payment_terms: PaymentTerms = PaymentTerms.NET_30
    is_recurring: bool = False
    recurring_pattern: RecurringPattern | None = None

    # Free text
    notes: str | None = Field(default=None, max_length=2000)
    terms: str | None = None
    tags: list[str] = Field(default_factory=list)

    # Client portal
    recipient_emails: list[str] = Field(default_factory=list)
    view_count: int = 0
    last_viewed_at: datetime | None = None

    # System fields
    is_active: bool = True
    archived_at: datetime | None = None
    void_reason: str | None = None
    sent_at: datetime | None = None
    paid_at: datetime | None = None
    history: list[HistoryEntry] = Field(default_factory=list)
    version: int = 0

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator(
        "subtotal",
        "tax_amount",
        "discount_amount",
        "total_amount",
        "paid_amount",
        "balance_amount",
        mode="before",
    )
    @classmethod
    def coerce_numeric(cls, v: Any) -> Decimal:
        return to_decimal(v)

    @field_validator("invoice_number", mode="before")
    @classmethod
    def normalize_number(cls, v: Any) -> str | None:
        if v is None:
            return None
        s = str(v).strip().upper()
        return s or None

    @field_validator("tags", mode="before")
    @classmethod
    def strip_tags(cls, v: Any) -> list[str]:
        if not v:
            return []
        return [str(t).strip() for t in v if str(t).strip()]

    @property
    def days_until_due(self) -> int:
        """Whole days from today to the due date (negative once past)."""
        return (self.due_date - date.today()).days

    @property
    def is_overdue(self) -> bool:
        return self.days_until_due < 0 and self.status not in (
            InvoiceStatus.PAID,
            InvoiceStatus.CANCELLED,
        )

    @property
    def effective_tax_rate(self) -> Decimal:
        """Invoice-level tax as a percentage of subtotal."""
        if self.subtotal > 0:
            return self.tax_amount / self.subtotal * HUNDRED
        return ZERO

    @property
    def line_tax_total(self) -> Decimal:
        """Sum of per-line taxes (reported separately, not part of tax_amount)."""
        return sum((i.tax_amount for i in self.items), ZERO)
