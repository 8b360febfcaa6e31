"""
Invoice ledger endpoints.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status

from renovo.api.dependencies import (
    get_archive_invoice_use_case,
    get_cancel_invoice_use_case,
    get_check_overdue_use_case,
    get_create_invoice_use_case,
    get_dashboard_use_case,
    get_generate_recurring_use_case,
    get_get_invoice_use_case,
    get_list_invoices_use_case,
    get_record_payment_use_case,
    get_register_view_use_case,
    get_send_invoice_use_case,
    get_update_invoice_use_case,
)
from renovo.application.dto.requests import (
    CancelInvoiceRequest,
    CreateInvoiceRequest,
    GenerateRecurringRequest,
    RecordPaymentRequest,
    SendInvoiceRequest,
    UpdateInvoiceRequest,
)
from renovo.application.dto.responses import (
    DashboardSummaryResponse,
    ErrorResponse,
    InvoiceListResponse,
    InvoiceResponse,
    OverdueInvoicesResponse,
    OverdueRefreshResponse,
)
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
from renovo.core.entities import InvoiceFilter, InvoiceStatus, PaymentStatus

router = APIRouter(prefix="/api/invoices", tags=["invoices"])

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Invoice not found"}}
_CONFLICT = {409: {"model": ErrorResponse, "description": "Invoice state conflict"}}


# Collection-level routes are declared before /{invoice_id}


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    status_filter: InvoiceStatus | None = Query(default=None, alias="status"),
    payment_status: PaymentStatus | None = None,
    client_id: str | None = None,
    project_id: str | None = None,
    issued_from: date | None = None,
    issued_to: date | None = None,
    search: str | None = Query(default=None, max_length=100),
    include_archived: bool = False,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    use_case: ListInvoicesUseCase = Depends(get_list_invoices_use_case),
) -> InvoiceListResponse:
    """
    List invoices, newest first.

    Archived invoices are hidden unless ``include_archived`` is set.
    """
    filters = InvoiceFilter(
        status=status_filter,
        payment_status=payment_status,
        client_id=client_id,
        project_id=project_id,
        issued_from=issued_from,
        issued_to=issued_to,
        search=search,
        include_archived=include_archived,
    )
    page = await use_case.execute(filters, limit=limit, offset=offset)
    return use_case.to_response(page)


@router.post(
    "",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid invoice data"},
        409: {"model": ErrorResponse, "description": "Invoice number already in use"},
    },
)
async def create_invoice(
    request: CreateInvoiceRequest,
    use_case: CreateInvoiceUseCase = Depends(get_create_invoice_use_case),
) -> InvoiceResponse:
    """
    Create a draft invoice.

    Totals, due date and payment status are derived server-side. When no
    ``invoice_number`` is given, the next ``PREFIX-YEAR-SEQ`` is allocated.
    """
    invoice = await use_case.execute(request)
    return use_case.to_response(invoice)


@router.get("/overdue", response_model=OverdueInvoicesResponse)
async def list_overdue_invoices(
    use_case: CheckOverdueInvoicesUseCase = Depends(get_check_overdue_use_case),
) -> OverdueInvoicesResponse:
    """List open invoices past their due date."""
    invoices = await use_case.list_overdue()
    return use_case.to_list_response(invoices)


@router.post("/overdue/refresh", response_model=OverdueRefreshResponse)
async def refresh_overdue_invoices(
    use_case: CheckOverdueInvoicesUseCase = Depends(get_check_overdue_use_case),
) -> OverdueRefreshResponse:
    """Re-derive payment status of every open invoice against today's date."""
    result = await use_case.refresh()
    return use_case.to_refresh_response(result)


@router.get("/dashboard/summary", response_model=DashboardSummaryResponse)
async def dashboard_summary(
    days: int | None = Query(default=None, ge=1, le=3650),
    use_case: InvoiceDashboardUseCase = Depends(get_dashboard_use_case),
) -> DashboardSummaryResponse:
    """Per-status totals for active invoices created in the last ``days`` days."""
    result = await use_case.execute(days=days)
    return use_case.to_response(result)


@router.get("/{invoice_id}", response_model=InvoiceResponse, responses=_NOT_FOUND)
async def get_invoice(
    invoice_id: int,
    use_case: GetInvoiceUseCase = Depends(get_get_invoice_use_case),
) -> InvoiceResponse:
    """Get an invoice with its items, payments and history."""
    invoice = await use_case.execute(invoice_id)
    return use_case.to_response(invoice)


@router.put(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    responses={**_NOT_FOUND, **_CONFLICT, 400: {"model": ErrorResponse}},
)
async def update_invoice(
    invoice_id: int,
    request: UpdateInvoiceRequest,
    use_case: UpdateInvoiceUseCase = Depends(get_update_invoice_use_case),
) -> InvoiceResponse:
    """
    Update an invoice.

    Only fields present in the body are changed. Send ``version`` to
    reject the write if the invoice changed since it was read.
    """
    invoice = await use_case.execute(invoice_id, request)
    return use_case.to_response(invoice)


@router.delete("/{invoice_id}", response_model=InvoiceResponse, responses={**_NOT_FOUND, **_CONFLICT})
async def archive_invoice(
    invoice_id: int,
    actor_id: str | None = None,
    use_case: ArchiveInvoiceUseCase = Depends(get_archive_invoice_use_case),
) -> InvoiceResponse:
    """Soft-delete an invoice. Paid invoices cannot be archived."""
    invoice = await use_case.execute(invoice_id, actor_id=actor_id)
    return use_case.to_response(invoice)


@router.post(
    "/{invoice_id}/payments",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**_NOT_FOUND, **_CONFLICT, 400: {"model": ErrorResponse}},
)
async def record_payment(
    invoice_id: int,
    request: RecordPaymentRequest,
    use_case: RecordPaymentUseCase = Depends(get_record_payment_use_case),
) -> InvoiceResponse:
    """
    Record a payment against an invoice.

    The amount must be positive and must not exceed the balance. Returns
    the invoice with refreshed totals and payment status.
    """
    invoice = await use_case.execute(invoice_id, request)
    return use_case.to_response(invoice)


@router.post(
    "/{invoice_id}/send",
    response_model=InvoiceResponse,
    responses={**_NOT_FOUND, **_CONFLICT},
)
async def send_invoice(
    invoice_id: int,
    request: SendInvoiceRequest | None = None,
    use_case: SendInvoiceUseCase = Depends(get_send_invoice_use_case),
) -> InvoiceResponse:
    """Mark an invoice as sent. Delivery itself happens elsewhere."""
    invoice = await use_case.execute(invoice_id, request or SendInvoiceRequest())
    return use_case.to_response(invoice)


@router.post(
    "/{invoice_id}/view",
    response_model=InvoiceResponse,
    responses={**_NOT_FOUND, **_CONFLICT},
)
async def register_view(
    invoice_id: int,
    use_case: RegisterInvoiceViewUseCase = Depends(get_register_view_use_case),
) -> InvoiceResponse:
    """Record that the client opened the invoice."""
    invoice = await use_case.execute(invoice_id)
    return use_case.to_response(invoice)


@router.post(
    "/{invoice_id}/cancel",
    response_model=InvoiceResponse,
    responses={**_NOT_FOUND, **_CONFLICT},
)
async def cancel_invoice(
    invoice_id: int,
    request: CancelInvoiceRequest | None = None,
    use_case: CancelInvoiceUseCase = Depends(get_cancel_invoice_use_case),
) -> InvoiceResponse:
    """Cancel an invoice. Invoices with recorded payments cannot be cancelled."""
    invoice = await use_case.execute(invoice_id, request or CancelInvoiceRequest())
    return use_case.to_response(invoice)


@router.post(
    "/{invoice_id}/recurring/next",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**_NOT_FOUND, **_CONFLICT},
)
async def generate_next_recurring(
    invoice_id: int,
    request: GenerateRecurringRequest | None = None,
    use_case: GenerateRecurringInvoiceUseCase = Depends(get_generate_recurring_use_case),
) -> InvoiceResponse:
    """Generate the next draft invoice from a recurring invoice."""
    result = await use_case.execute(invoice_id, request)
    return use_case.to_response(result)
