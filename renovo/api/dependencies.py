"""
Dependency injection container for FastAPI.

Provides store and use case instances to route handlers. Tests swap
the store out through ``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends

from renovo.application.use_cases import (
    ArchiveInvoiceUseCase,
    CancelInvoiceUseCase,
    CheckOverdueInvoicesUseCase,
    CreateInvoiceUseCase,
    GenerateRecurringInvoiceUseCase,
    GetInvoiceUseCase,
    InvoiceDashboardUseCase,
    ListInvoicesUseCase,
    RecordPaymentUseCase,
    RegisterInvoiceViewUseCase,
    SendInvoiceUseCase,
    UpdateInvoiceUseCase,
)
from renovo.config import Settings, get_settings
from renovo.core.interfaces import IInvoiceStore
from renovo.infrastructure.storage.sqlite import get_invoice_store


@lru_cache
def get_app_settings() -> Settings:
    """Get cached application settings."""
    return get_settings()


# Store dependencies
async def get_inv_store() -> IInvoiceStore:
    """Get invoice store."""
    return await get_invoice_store()


# Use case dependencies
def get_create_invoice_use_case(
    store: IInvoiceStore = Depends(get_inv_store),
    settings: Settings = Depends(get_app_settings),
) -> CreateInvoiceUseCase:
    """Get create invoice use case."""
    return CreateInvoiceUseCase(invoice_store=store, settings=settings.invoicing)


def get_update_invoice_use_case(
    store: IInvoiceStore = Depends(get_inv_store),
) -> UpdateInvoiceUseCase:
    """Get update invoice use case."""
    return UpdateInvoiceUseCase(invoice_store=store)


def get_get_invoice_use_case(store: IInvoiceStore = Depends(get_inv_store)) -> GetInvoiceUseCase:
    return GetInvoiceUseCase(invoice_store=store)


def get_list_invoices_use_case(
    store: IInvoiceStore = Depends(get_inv_store),
) -> ListInvoicesUseCase:
    return ListInvoicesUseCase(invoice_store=store)


def get_record_payment_use_case(
    store: IInvoiceStore = Depends(get_inv_store),
) -> RecordPaymentUseCase:
    """Get record payment use case."""
    return RecordPaymentUseCase(invoice_store=store)


def get_send_invoice_use_case(store: IInvoiceStore = Depends(get_inv_store)) -> SendInvoiceUseCase:
    return SendInvoiceUseCase(invoice_store=store)


def get_register_view_use_case(
    store: IInvoiceStore = Depends(get_inv_store),
) -> RegisterInvoiceViewUseCase:
    return RegisterInvoiceViewUseCase(invoice_store=store)


def get_cancel_invoice_use_case(
    store: IInvoiceStore = Depends(get_inv_store),
) -> CancelInvoiceUseCase:
    return CancelInvoiceUseCase(invoice_store=store)


def get_archive_invoice_use_case(
    store: IInvoiceStore = Depends(get_inv_store),
) -> ArchiveInvoiceUseCase:
    return ArchiveInvoiceUseCase(invoice_store=store)


def get_generate_recurring_use_case(
    store: IInvoiceStore = Depends(get_inv_store),
) -> GenerateRecurringInvoiceUseCase:
    """Get recurring invoice generation use case."""
    return GenerateRecurringInvoiceUseCase(invoice_store=store)


def get_check_overdue_use_case(
    store: IInvoiceStore = Depends(get_inv_store),
) -> CheckOverdueInvoicesUseCase:
    """Get overdue check use case."""
    return CheckOverdueInvoicesUseCase(invoice_store=store)


def get_dashboard_use_case(
    store: IInvoiceStore = Depends(get_inv_store),
) -> InvoiceDashboardUseCase:
    """Get invoice dashboard use case."""
    return InvoiceDashboardUseCase(invoice_store=store)
