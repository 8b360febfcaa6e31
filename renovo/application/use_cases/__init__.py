"""Application use cases."""

from renovo.application.use_cases.base import InvoiceUseCase, invoice_to_response
from renovo.application.use_cases.change_invoice_status import (
    ArchiveInvoiceUseCase,
    CancelInvoiceUseCase,
    RegisterInvoiceViewUseCase,
    SendInvoiceUseCase,
)
from renovo.application.use_cases.check_overdue_invoices import (
    CheckOverdueInvoicesUseCase,
    OverdueRefreshResult,
)
from renovo.application.use_cases.create_invoice import CreateInvoiceUseCase
from renovo.application.use_cases.generate_recurring_invoice import (
    GenerateRecurringInvoiceUseCase,
    RecurringGenerationResult,
)
from renovo.application.use_cases.invoice_dashboard import DashboardResult, InvoiceDashboardUseCase
from renovo.application.use_cases.query_invoices import (
    GetInvoiceUseCase,
    InvoicePage,
    ListInvoicesUseCase,
)
from renovo.application.use_cases.record_payment import RecordPaymentUseCase
from renovo.application.use_cases.update_invoice import UpdateInvoiceUseCase

__all__ = [
    "InvoiceUseCase",
    "invoice_to_response",
    "CreateInvoiceUseCase",
    "UpdateInvoiceUseCase",
    "GetInvoiceUseCase",
    "ListInvoicesUseCase",
    "InvoicePage",
    "RecordPaymentUseCase",
    "SendInvoiceUseCase",
    "RegisterInvoiceViewUseCase",
    "CancelInvoiceUseCase",
    "ArchiveInvoiceUseCase",
    "GenerateRecurringInvoiceUseCase",
    "RecurringGenerationResult",
    "CheckOverdueInvoicesUseCase",
    "OverdueRefreshResult",
    "InvoiceDashboardUseCase",
    "DashboardResult",
]
