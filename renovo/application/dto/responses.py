"""Response DTOs for API endpoints.

Pydantic v2 models for API response serialization.
Monetary values are exposed as floats.
"""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

# --- Invoices ---


class LineItemResponse(BaseModel):
    """Line item response DTO."""

    id: int | None = None
    description: str
    quantity: float
    unit: str
    rate: float
    discount: float
    tax_rate: float
    amount: float
    tax_amount: float
    category: str
    project_phase: str
    job_code: str | None = None
    notes: str | None = None


class TaxEntryResponse(BaseModel):
    name: str
    rate: float
    amount: float | None = None
    computed_amount: float | None = None
    type: str


class DiscountResponse(BaseModel):
    type: str
    value: float
    applies_to: str
    reason: str | None = None


class PaymentResponse(BaseModel):
    """Payment ledger entry."""

    id: int | None = None
    amount: float
    date: datetime
    method: str
    reference: str | None = None
    notes: str | None = None
    recorded_by: str | None = None


class RecurringPatternResponse(BaseModel):
    frequency: str | None = None
    interval: int
    day_of_month: int | None = None
    day_of_week: int | None = None
    end_date: date | None = None
    max_occurrences: int | None = None
    occurrences: int
    next_due_date: date | None = None


class HistoryEntryResponse(BaseModel):
    action: str
    timestamp: datetime
    user: str | None = None
    details: str | None = None
    changes: dict[str, Any] = Field(default_factory=dict)


class InvoiceResponse(BaseModel):
    """Invoice response DTO."""

    id: int | None = None
    invoice_number: str | None = None
    purchase_order_number: str | None = None
    type: str
    issue_date: date
    due_date: date
    start_date: date | None = None
    end_date: date | None = None
    status: str
    payment_status: str
    client_id: str
    project_id: str | None = None
    created_by: str | None = None
    sent_by: str | None = None
    currency: str
    subtotal: float
    tax_amount: float
    discount_amount: float
    total_amount: float
    paid_amount: float
    balance_amount: float
    line_tax_total: float
    effective_tax_rate: float
    days_until_due: int
    is_overdue: bool
    items: list[LineItemResponse] = Field(default_factory=list)
    taxes: list[TaxEntryResponse] = Field(default_factory=list)
    discount: DiscountResponse
    payments: list[PaymentResponse] = Field(default_factory=list)
    payment_terms: str
    is_recurring: bool
    recurring_pattern: RecurringPatternResponse | None = None
    notes: str | None = None
    terms: str | None = None
    tags: list[str] = Field(default_factory=list)
    recipient_emails: list[str] = Field(default_factory=list)
    view_count: int = 0
    last_viewed_at: datetime | None = None
    is_active: bool
    archived_at: datetime | None = None
    void_reason: str | None = None
    sent_at: datetime | None = None
    paid_at: datetime | None = None
    history: list[HistoryEntryResponse] = Field(default_factory=list)
    version: int
    created_at: datetime
    updated_at: datetime


class PaginatedResponse(BaseModel):
    """Base for paginated responses."""

    total: int
    limit: int
    offset: int
    has_more: bool


class InvoiceListResponse(PaginatedResponse):
    invoices: list[InvoiceResponse]


class OverdueInvoicesResponse(BaseModel):
    """Open invoices past their due date."""

    invoices: list[InvoiceResponse]
    total: int
    total_outstanding: float


class OverdueRefreshResponse(BaseModel):
    """Result of the overdue sweep."""

    checked: int
    updated: int
    invoice_numbers: list[str] = Field(default_factory=list)
    conflicts: int = 0


class StatusSummaryResponse(BaseModel):
    count: int
    total_amount: float
    paid_amount: float


class DashboardSummaryResponse(BaseModel):
    """Per-status roll-up for the dashboard."""

    period_days: int
    since: date
    total_invoices: int
    total_amount: float
    paid_amount: float
    outstanding_amount: float
    overdue_invoices: int
    by_status: dict[str, StatusSummaryResponse] = Field(default_factory=dict)


# --- Health / errors ---


class LedgerHealthResponse(BaseModel):
    """Ledger database status."""

    available: bool
    schema_version: str | None = None
    pending_migrations: list[str] = Field(default_factory=list)
    active_invoices: int | None = None
    latency_ms: float | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str = "1.0.0"
    uptime_seconds: float
    database: LedgerHealthResponse | None = None


class ErrorResponse(BaseModel):
    """Standardized error response DTO.

    Every error response includes:
    - error_code: machine-readable code (e.g. INVOICE_NOT_FOUND)
    - message: human-readable description
    - hint: suggested recovery action
    - path: request path that triggered the error
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error description")
    hint: str | None = Field(default=None, description="Suggested recovery action")
    detail: str | None = Field(default=None, description="Additional details")
    path: str | None = Field(default=None, description="Request path")
    timestamp: datetime = Field(default_factory=datetime.now)
