"""
Invoice lifecycle use cases.

Send, register a client view, cancel and archive. These only move the
document status and audit trail; money fields are never touched.
"""

from renovo.application.dto.requests import CancelInvoiceRequest, SendInvoiceRequest
from renovo.application.use_cases.base import InvoiceUseCase
from renovo.config import get_logger
from renovo.core.entities import Invoice
from renovo.core.services import archive_invoice, cancel_invoice, mark_sent, mark_viewed

logger = get_logger(__name__)


class SendInvoiceUseCase(InvoiceUseCase):
    """Mark an invoice as sent to its recipients."""

    async def execute(self, invoice_id: int, request: SendInvoiceRequest) -> Invoice:
        invoice = await self._mutate(
            invoice_id,
            lambda inv: mark_sent(inv, request.sent_by, request.recipients),
        )
        logger.info(
            "invoice_sent",
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            recipients=len(invoice.recipient_emails),
        )
        return invoice


class RegisterInvoiceViewUseCase(InvoiceUseCase):
    """Count a client portal view."""

    async def execute(self, invoice_id: int) -> Invoice:
        invoice = await self._mutate(invoice_id, mark_viewed)
        logger.debug("invoice_viewed", invoice_id=invoice.id, view_count=invoice.view_count)
        return invoice


class CancelInvoiceUseCase(InvoiceUseCase):
    """Void an invoice that has no recorded payments."""

    async def execute(self, invoice_id: int, request: CancelInvoiceRequest) -> Invoice:
        invoice = await self._mutate(
            invoice_id,
            lambda inv: cancel_invoice(inv, request.cancelled_by, request.reason),
        )
        logger.info(
            "invoice_cancelled",
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            reason=request.reason,
        )
        return invoice


class ArchiveInvoiceUseCase(InvoiceUseCase):
    """Soft delete. Invoices are never removed from storage."""

    async def execute(self, invoice_id: int, actor_id: str | None = None) -> Invoice:
        invoice = await self._mutate(invoice_id, lambda inv: archive_invoice(inv, actor_id))
        logger.info(
            "invoice_archived",
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
        )
        return invoice
