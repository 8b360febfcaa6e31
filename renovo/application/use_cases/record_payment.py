"""Record Payment Use Case - appends to the payment ledger."""

from datetime import date

from renovo.application.dto.requests import RecordPaymentRequest
from renovo.application.use_cases.base import InvoiceUseCase
from renovo.config import get_logger
from renovo.core.entities import Invoice
from renovo.core.services import record_payment

logger = get_logger(__name__)


class RecordPaymentUseCase(InvoiceUseCase):
    """
    Record a payment against a stored invoice.

    The balance check runs against freshly loaded state on every attempt,
    so two concurrent payments can never together exceed the balance.
    """

    async def execute(
        self,
        invoice_id: int,
        request: RecordPaymentRequest,
        today: date | None = None,
    ) -> Invoice:
        logger.info(
            "record_payment_started",
            invoice_id=invoice_id,
            amount=request.amount,
            method=request.method,
        )

        def mutate(invoice: Invoice) -> None:
            record_payment(
                invoice,
                request.amount,
                request.method,
                request.recorded_by,
                payment_date=request.date,
                reference=request.reference,
                notes=request.notes,
                today=today,
            )

        invoice = await self._mutate(invoice_id, mutate)
        logger.info(
            "record_payment_complete",
            invoice_id=invoice.id,
            balance=invoice.balance_amount,
            status=invoice.status.value,
        )
        return invoice
