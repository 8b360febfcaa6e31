"""
Check Overdue Invoices Use Case.

Lists open invoices past their due date and sweeps open invoices to
re-derive their payment status against today's date.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from renovo.application.dto.responses import OverdueInvoicesResponse, OverdueRefreshResponse
from renovo.application.use_cases.base import InvoiceUseCase, invoice_to_response
from renovo.config import get_logger
from renovo.core.entities import Invoice
from renovo.core.exceptions import ConcurrentModificationError
from renovo.core.services import refresh_overdue

logger = get_logger(__name__)


@dataclass
class OverdueRefreshResult:
    """Result of an overdue sweep."""

    checked: int = 0
    updated: int = 0
    conflicts: int = 0
    invoice_numbers: list[str] = field(default_factory=list)


class CheckOverdueInvoicesUseCase(InvoiceUseCase):
    """Overdue listing and level-triggered status sweep."""

    async def list_overdue(self, today: date | None = None) -> list[Invoice]:
        store = await self._get_store()
        return await store.list_overdue(today or date.today())

    async def refresh(self, today: date | None = None) -> OverdueRefreshResult:
        """
        Re-derive status for every open invoice.

        Invoices modified concurrently are skipped; the next sweep picks
        them up.
        """
        today = today or date.today()
        store = await self._get_store()
        invoices = await store.list_open()
        result = OverdueRefreshResult(checked=len(invoices))

        for invoice in invoices:
            if not refresh_overdue(invoice, today):
                continue
            try:
                await store.update_invoice(invoice)
            except ConcurrentModificationError:
                result.conflicts += 1
                continue
            result.updated += 1
            result.invoice_numbers.append(invoice.invoice_number or str(invoice.id))

        logger.info(
            "overdue_refresh_complete",
            checked=result.checked,
            updated=result.updated,
            conflicts=result.conflicts,
        )
        return result

    @staticmethod
    def to_list_response(invoices: list[Invoice]) -> OverdueInvoicesResponse:
        outstanding = sum((inv.balance_amount for inv in invoices), Decimal("0"))
        return OverdueInvoicesResponse(
            invoices=[invoice_to_response(inv) for inv in invoices],
            total=len(invoices),
            total_outstanding=float(outstanding),
        )

    @staticmethod
    def to_refresh_response(result: OverdueRefreshResult) -> OverdueRefreshResponse:
        return OverdueRefreshResponse(
            checked=result.checked,
            updated=result.updated,
            conflicts=result.conflicts,
            invoice_numbers=result.invoice_numbers,
        )
