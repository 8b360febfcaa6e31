"""Read-side projections over the invoice collection."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from renovo.core.entities.invoice import InvoiceStatus, PaymentStatus


class InvoiceFilter(BaseModel):
    """Query filter for listing invoices."""

    status: InvoiceStatus | None = None
    payment_status: PaymentStatus | None = None
    client_id: str | None = None
    project_id: str | None = None
    issued_from: date | None = None
    issued_to: date | None = None
    search: str | None = Field(default=None, max_length=100)
    include_archived: bool = False


class InvoiceStatusSummary(BaseModel):
    """Roll-up for a single status."""

    count: int = 0
    total_amount: Decimal = Decimal("0")
    paid_amount: Decimal = Decimal("0")


class InvoiceSummary(BaseModel):
    """Dashboard roll-up of active invoices."""

    total_invoices: int = 0
    total_amount: Decimal = Decimal("0")
    paid_amount: Decimal = Decimal("0")
    overdue_invoices: int = 0
    by_status: dict[str, InvoiceStatusSummary] = Field(default_factory=dict)

    @property
    def outstanding_amount(self) -> Decimal:
        return self.total_amount - self.paid_amount
