"""Data Transfer Objects for API layer.

Request DTOs: Validate and parse incoming API requests.
Response DTOs: Structure and serialize API responses.

These are the ONLY contracts between API handlers and use cases.
"""

from renovo.application.dto.requests import (
    CancelInvoiceRequest,
    CreateInvoiceRequest,
    DiscountRequest,
    GenerateRecurringRequest,
    LineItemRequest,
    RecordPaymentRequest,
    RecurringPatternRequest,
    SendInvoiceRequest,
    TaxEntryRequest,
    UpdateInvoiceRequest,
)
from renovo.application.dto.responses import (
    DashboardSummaryResponse,
    DiscountResponse,
    ErrorResponse,
    HealthResponse,
    HistoryEntryResponse,
    InvoiceListResponse,
    InvoiceResponse,
    LedgerHealthResponse,
    LineItemResponse,
    OverdueInvoicesResponse,
    OverdueRefreshResponse,
    PaginatedResponse,
    PaymentResponse,
    RecurringPatternResponse,
    StatusSummaryResponse,
    TaxEntryResponse,
)

__all__ = [
    # Requests
    "LineItemRequest",
    "TaxEntryRequest",
    "DiscountRequest",
    "RecurringPatternRequest",
    "CreateInvoiceRequest",
    "UpdateInvoiceRequest",
    "RecordPaymentRequest",
    "SendInvoiceRequest",
    "CancelInvoiceRequest",
    "GenerateRecurringRequest",
    # Responses
    "InvoiceResponse",
    "LineItemResponse",
    "TaxEntryResponse",
    "DiscountResponse",
    "PaymentResponse",
    "RecurringPatternResponse",
    "HistoryEntryResponse",
    "InvoiceListResponse",
    "PaginatedResponse",
    "OverdueInvoicesResponse",
    "OverdueRefreshResponse",
    "DashboardSummaryResponse",
    "StatusSummaryResponse",
    "HealthResponse",
    "LedgerHealthResponse",
    "ErrorResponse",
]
