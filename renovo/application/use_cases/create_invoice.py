"""Create Invoice Use Case - derives totals and allocates the invoice number."""

from datetime import date

from renovo.application.dto.requests import CreateInvoiceRequest
from renovo.application.use_cases.base import InvoiceUseCase
from renovo.config import get_logger, get_settings
from renovo.config.settings import InvoicingSettings
from renovo.core.entities import (
    Currency,
    DiscountPolicy,
    HistoryAction,
    Invoice,
    LineItem,
    PaymentTerms,
    RecurringPattern,
    TaxEntry,
)
from renovo.core.exceptions import ValidationError
from renovo.core.interfaces import IInvoiceStore
from renovo.core.services import (
    add_history,
    apply_totals,
    due_date_for_terms,
    schedule_next_due_date,
)

logger = get_logger(__name__)


class CreateInvoiceUseCase(InvoiceUseCase):
    """Create a draft invoice from a request."""

    def __init__(
        self,
        invoice_store: IInvoiceStore | None = None,
        settings: InvoicingSettings | None = None,
    ):
        super().__init__(invoice_store)
        self._settings = settings

    def build_invoice(self, request: CreateInvoiceRequest, today: date | None = None) -> Invoice:
        """Build the entity with all derived fields, without persisting it."""
        settings = self._settings or get_settings().invoicing
        issue_date = request.issue_date or today or date.today()
        terms = request.payment_terms or PaymentTerms(settings.default_payment_terms)

        due_date = request.due_date or due_date_for_terms(issue_date, terms)
        if due_date is None:
            raise ValidationError("due_date", "Due date is required for custom payment terms")
        if due_date < issue_date:
            raise ValidationError("due_date", "Due date cannot be before issue date", due_date)

        invoice = Invoice(
            invoice_number=request.invoice_number,
            purchase_order_number=request.purchase_order_number,
            type=request.type,
            issue_date=issue_date,
            due_date=due_date,
            start_date=request.start_date,
            end_date=request.end_date,
            client_id=request.client_id,
            project_id=request.project_id,
            created_by=request.created_by,
            currency=request.currency or Currency(settings.default_currency),
            items=[LineItem(**item.model_dump()) for item in request.items],
            taxes=[TaxEntry(**tax.model_dump()) for tax in request.taxes],
            discount=DiscountPolicy(**request.discount.model_dump())
            if request.discount
            else DiscountPolicy(),
            payment_terms=terms,
            is_recurring=request.is_recurring,
            recurring_pattern=RecurringPattern(**request.recurring_pattern.model_dump())
            if request.recurring_pattern
            else None,
            notes=request.notes,
            terms=request.terms,
            tags=request.tags,
            recipient_emails=request.recipient_emails,
        )

        apply_totals(invoice)
        schedule_next_due_date(invoice)
        add_history(invoice, HistoryAction.CREATED, request.created_by, details="Invoice created")
        return invoice

    async def execute(self, request: CreateInvoiceRequest) -> Invoice:
        """Execute create invoice use case."""
        settings = self._settings or get_settings().invoicing
        logger.info(
            "create_invoice_started",
            client_id=request.client_id,
            items=len(request.items),
        )

        invoice = self.build_invoice(request)
        store = await self._get_store()

        if invoice.invoice_number:
            # Caller-chosen numbers are not retried
            created = await store.create_invoice(invoice)
        else:
            created = await self._create_numbered(invoice, settings)

        logger.info(
            "create_invoice_complete",
            invoice_id=created.id,
            invoice_number=created.invoice_number,
            total=created.total_amount,
        )
        return created

