"""Generate Recurring Invoice Use Case - produces the next occurrence of a template."""

from dataclasses import dataclass
from datetime import date

from tenacity import retry, retry_if_exception_type, stop_after_attempt

from renovo.application.dto.requests import GenerateRecurringRequest
from renovo.application.dto.responses import InvoiceResponse
from renovo.application.use_cases.base import InvoiceUseCase, invoice_to_response, log_retry
from renovo.config import get_logger, get_settings
from renovo.core.entities import Invoice
from renovo.core.exceptions import ConcurrentModificationError, DuplicateInvoiceNumberError
from renovo.core.services import build_next_occurrence

logger = get_logger(__name__)


@dataclass
class RecurringGenerationResult:
    """The template after advancing and the new draft occurrence."""

    template: Invoice
    occurrence: Invoice


class GenerateRecurringInvoiceUseCase(InvoiceUseCase):
    """
    Create the next draft invoice of a recurring invoice.

    The advanced template and the new occurrence are written in a single
    store transaction. A version conflict on the template or a number
    collision rebuilds both from fresh state and tries again.
    """

    async def execute(
        self,
        invoice_id: int,
        request: GenerateRecurringRequest | None = None,
    ) -> RecurringGenerationResult:
        actor_id = request.created_by if request else None
        settings = get_settings().invoicing
        store = await self._get_store()
        attempts = self._retry_attempts or settings.write_retry_attempts
        year = date.today().year

        @retry(
            stop=stop_after_attempt(max(1, attempts)),
            retry=retry_if_exception_type(
                (ConcurrentModificationError, DuplicateInvoiceNumberError)
            ),
            before_sleep=log_retry("recurring_generation_retry", invoice_id=invoice_id),
            reraise=True,
        )
        async def attempt() -> RecurringGenerationResult:
            template = await self._load(invoice_id)
            occurrence = build_next_occurrence(template, actor_id)
            occurrence.invoice_number = await store.reserve_invoice_number(
                settings.number_prefix, year
            )
            occurrence = await store.create_occurrence(template, occurrence)
            return RecurringGenerationResult(template=template, occurrence=occurrence)

        result = await attempt()
        template = result.template

        logger.info(
            "recurring_invoice_generated",
            template_id=template.id,
            invoice_number=result.occurrence.invoice_number,
            due_date=result.occurrence.due_date.isoformat(),
            occurrence=template.recurring_pattern.occurrences if template.recurring_pattern else 0,
        )
        return result

    @staticmethod
    def to_response(result: RecurringGenerationResult) -> InvoiceResponse:  # type: ignore[override]
        """The API returns the newly generated invoice."""
        return invoice_to_response(result.occurrence)
