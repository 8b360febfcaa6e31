"""Update Invoice Use Case - edits editable fields and recomputes totals."""

from datetime import date

from renovo.application.dto.requests import UpdateInvoiceRequest
from renovo.application.use_cases.base import InvoiceUseCase
from renovo.config import get_logger
from renovo.core.entities import (
    DiscountPolicy,
    HistoryAction,
    Invoice,
    LineItem,
    RecurringPattern,
    TaxEntry,
)
from renovo.core.exceptions import ConcurrentModificationError, ValidationError
from renovo.core.services import (
    OPEN_STATUSES,
    add_history,
    apply_payment_status,
    ensure_editable,
    revise_charges,
    schedule_next_due_date,
)

logger = get_logger(__name__)

_PLAIN_FIELDS = (
    "purchase_order_number",
    "project_id",
    "start_date",
    "end_date",
    "payment_terms",
    "notes",
    "terms",
    "tags",
    "recipient_emails",
)


class UpdateInvoiceUseCase(InvoiceUseCase):
    """Apply a partial update to a draft or open invoice."""

    async def execute(
        self,
        invoice_id: int,
        request: UpdateInvoiceRequest,
        today: date | None = None,
    ) -> Invoice:
        changed = sorted(request.changed_fields())
        logger.info("update_invoice_started", invoice_id=invoice_id, fields=changed)

        def mutate(invoice: Invoice) -> None:
            if request.version is not None and request.version != invoice.version:
                raise ConcurrentModificationError(invoice_id, request.version)
            self.apply(invoice, request, today)

        # A pinned version is checked against a single load
        attempts = 1 if request.version is not None else None
        invoice = await self._mutate(invoice_id, mutate, attempts=attempts)
        logger.info(
            "update_invoice_complete",
            invoice_id=invoice.id,
            version=invoice.version,
            total=invoice.total_amount,
        )
        return invoice

    def apply(
        self,
        invoice: Invoice,
        request: UpdateInvoiceRequest,
        today: date | None = None,
    ) -> Invoice:
        """Apply the request to ``invoice`` in memory."""
        ensure_editable(invoice)
        changes = request.changed_fields()
        if not changes:
            return invoice

        for name in _PLAIN_FIELDS:
            if name not in changes:
                continue
            value = getattr(request, name)
            if name in ("tags", "recipient_emails"):
                value = value or []
            elif name == "payment_terms" and value is None:
                continue
            setattr(invoice, name, value)

        if "due_date" in changes and request.due_date is not None:
            if request.due_date < invoice.issue_date:
                raise ValidationError(
                    "due_date", "Due date cannot be before issue date", request.due_date
                )
            invoice.due_date = request.due_date

        recurrence_changed = self._apply_recurrence(invoice, request, changes)
        if recurrence_changed or "due_date" in changes:
            pattern = invoice.recurring_pattern
            if pattern is not None and pattern.occurrences == 0:
                schedule_next_due_date(invoice)

        if changes.keys() & {"items", "taxes", "discount"}:
            revise_charges(
                invoice,
                items=[LineItem(**i.model_dump()) for i in request.items]
                if request.items is not None
                else None,
                taxes=[TaxEntry(**t.model_dump()) for t in request.taxes]
                if request.taxes is not None
                else None,
                discount=DiscountPolicy(**request.discount.model_dump())
                if request.discount is not None
                else None,
                today=today,
            )
        elif "due_date" in changes and invoice.status in OPEN_STATUSES:
            apply_payment_status(invoice, today)

        add_history(
            invoice,
            HistoryAction.MODIFIED,
            request.updated_by,
            details="Invoice updated",
            changes={"fields": sorted(changes)},
        )
        return invoice

    def _apply_recurrence(
        self, invoice: Invoice, request: UpdateInvoiceRequest, changes: dict
    ) -> bool:
        if "is_recurring" not in changes and "recurring_pattern" not in changes:
            return False

        if request.recurring_pattern is not None:
            previous = invoice.recurring_pattern
            invoice.recurring_pattern = RecurringPattern(
                **request.recurring_pattern.model_dump(),
                occurrences=previous.occurrences if previous else 0,
                next_due_date=previous.next_due_date if previous and previous.occurrences else None,
            )
        if request.is_recurring is not None:
            invoice.is_recurring = request.is_recurring

        if invoice.is_recurring and (
            invoice.recurring_pattern is None or invoice.recurring_pattern.frequency is None
        ):
            raise ValidationError("recurring_pattern", "Recurring invoices require a frequency")
        return True
