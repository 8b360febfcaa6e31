"""Shared plumbing for invoice use cases."""

from collections.abc import Callable
from datetime import date

from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt

from renovo.application.dto.responses import (
    DiscountResponse,
    HistoryEntryResponse,
    InvoiceResponse,
    LineItemResponse,
    PaymentResponse,
    RecurringPatternResponse,
    TaxEntryResponse,
)
from renovo.config import get_logger, get_settings
from renovo.config.settings import InvoicingSettings
from renovo.core.entities import Invoice
from renovo.core.exceptions import (
    ConcurrentModificationError,
    DuplicateInvoiceNumberError,
    InvoiceNotFoundError,
)
from renovo.core.interfaces import IInvoiceStore

logger = get_logger(__name__)


def log_retry(event: str, **context: object) -> Callable[[RetryCallState], None]:
    """Build a tenacity ``before_sleep`` hook that logs the failed attempt."""

    def log(retry_state: RetryCallState) -> None:
        logger.warning(
            event,
            attempt=retry_state.attempt_number,
            error=str(retry_state.outcome.exception()) if retry_state.outcome else None,
            **context,
        )

    return log


def invoice_to_response(inv: Invoice) -> InvoiceResponse:
    """Convert an invoice entity to its API shape."""
    pattern = inv.recurring_pattern
    return InvoiceResponse(
        id=inv.id,
        invoice_number=inv.invoice_number,
        purchase_order_number=inv.purchase_order_number,
        type=inv.type.value,
        issue_date=inv.issue_date,
        due_date=inv.due_date,
        start_date=inv.start_date,
        end_date=inv.end_date,
        status=inv.status.value,
        payment_status=inv.payment_status.value,
        client_id=inv.client_id,
        project_id=inv.project_id,
        created_by=inv.created_by,
        sent_by=inv.sent_by,
        currency=inv.currency.value,
        subtotal=float(inv.subtotal),
        tax_amount=float(inv.tax_amount),
        discount_amount=float(inv.discount_amount),
        total_amount=float(inv.total_amount),
        paid_amount=float(inv.paid_amount),
        balance_amount=float(inv.balance_amount),
        line_tax_total=float(inv.line_tax_total),
        effective_tax_rate=float(inv.effective_tax_rate),
        days_until_due=inv.days_until_due,
        is_overdue=inv.is_overdue,
        items=[
            LineItemResponse(
                id=item.id,
                description=item.description,
                quantity=float(item.quantity),
                unit=item.unit,
                rate=float(item.rate),
                discount=float(item.discount),
                tax_rate=float(item.tax_rate),
                amount=float(item.amount),
                tax_amount=float(item.tax_amount),
                category=item.category.value,
                project_phase=item.project_phase.value,
                job_code=item.job_code,
                notes=item.notes,
            )
            for item in inv.items
        ],
        taxes=[
            TaxEntryResponse(
                name=tax.name,
                rate=float(tax.rate),
                amount=float(tax.amount) if tax.amount is not None else None,
                computed_amount=(
                    float(tax.computed_amount) if tax.computed_amount is not None else None
                ),
                type=tax.type.value,
            )
            for tax in inv.taxes
        ],
        discount=DiscountResponse(
            type=inv.discount.type.value,
            value=float(inv.discount.value),
            applies_to=inv.discount.applies_to.value,
            reason=inv.discount.reason,
        ),
        payments=[
            PaymentResponse(
                id=p.id,
                amount=float(p.amount),
                date=p.date,
                method=p.method.value,
                reference=p.reference,
                notes=p.notes,
                recorded_by=p.recorded_by,
            )
            for p in inv.payments
        ],
        payment_terms=inv.payment_terms.value,
        is_recurring=inv.is_recurring,
        recurring_pattern=RecurringPatternResponse(
            frequency=pattern.frequency.value if pattern.frequency else None,
            interval=pattern.interval,
            day_of_month=pattern.day_of_month,
            day_of_week=pattern.day_of_week,
            end_date=pattern.end_date,
            max_occurrences=pattern.max_occurrences,
            occurrences=pattern.occurrences,
            next_due_date=pattern.next_due_date,
        )
        if pattern
        else None,
        notes=inv.notes,
        terms=inv.terms,
        tags=inv.tags,
        recipient_emails=inv.recipient_emails,
        view_count=inv.view_count,
        last_viewed_at=inv.last_viewed_at,
        is_active=inv.is_active,
        archived_at=inv.archived_at,
        void_reason=inv.void_reason,
        sent_at=inv.sent_at,
        paid_at=inv.paid_at,
        history=[
            HistoryEntryResponse(
                action=h.action.value,
                timestamp=h.timestamp,
                user=h.user,
                details=h.details,
                changes=h.changes,
            )
            for h in inv.history
        ],
        version=inv.version,
        created_at=inv.created_at,
        updated_at=inv.updated_at,
    )


class InvoiceUseCase:
    """Base for use cases that operate on a single stored invoice."""

    def __init__(
        self,
        invoice_store: IInvoiceStore | None = None,
        retry_attempts: int | None = None,
    ):
        self._store = invoice_store
        self._retry_attempts = retry_attempts

    async def _get_store(self) -> IInvoiceStore:
        if self._store is None:
            from renovo.infrastructure.storage.sqlite import get_invoice_store

            self._store = await get_invoice_store()
        return self._store

    async def _load(self, invoice_id: int) -> Invoice:
        store = await self._get_store()
        invoice = await store.get_invoice(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    async def _mutate(
        self,
        invoice_id: int,
        mutate: Callable[[Invoice], object],
        attempts: int | None = None,
    ) -> Invoice:
        """
        Load, apply ``mutate`` and write back under the version check.

        On a version conflict the invoice is reloaded and the mutation
        re-applied to fresh state, so ledger rules are always checked
        against what is stored. Errors raised by ``mutate`` propagate.
        ``attempts`` overrides the configured retry budget.
        """
        store = await self._get_store()
        attempts = (
            attempts or self._retry_attempts or get_settings().invoicing.write_retry_attempts
        )

        @retry(
            stop=stop_after_attempt(max(1, attempts)),
            retry=retry_if_exception_type(ConcurrentModificationError),
            before_sleep=log_retry("invoice_write_retry", invoice_id=invoice_id),
            reraise=True,
        )
        async def attempt() -> Invoice:
            invoice = await self._load(invoice_id)
            mutate(invoice)
            return await store.update_invoice(invoice)

        return await attempt()

    async def _create_numbered(
        self,
        invoice: Invoice,
        settings: InvoicingSettings | None = None,
    ) -> Invoice:
        """
        Store a new invoice under a freshly reserved number.

        A number collision (a hand-picked number that the counter later
        reaches) reserves the next number and tries again.
        """
        settings = settings or get_settings().invoicing
        store = await self._get_store()
        year = date.today().year

        @retry(
            stop=stop_after_attempt(max(1, settings.number_retry_attempts)),
            retry=retry_if_exception_type(DuplicateInvoiceNumberError),
            before_sleep=log_retry("invoice_number_collision"),
            reraise=True,
        )
        async def attempt() -> Invoice:
            invoice.invoice_number = await store.reserve_invoice_number(
                settings.number_prefix, year
            )
            return await store.create_invoice(invoice)

        return await attempt()

    @staticmethod
    def to_response(invoice: Invoice) -> InvoiceResponse:
        """Convert result to API response."""
        return invoice_to_response(invoice)
