"""Read-only invoice queries."""

from dataclasses import dataclass

from renovo.application.dto.responses import InvoiceListResponse
from renovo.application.use_cases.base import InvoiceUseCase, invoice_to_response
from renovo.core.entities import Invoice, InvoiceFilter


@dataclass
class InvoicePage:
    invoices: list[Invoice]
    total: int
    limit: int
    offset: int


class GetInvoiceUseCase(InvoiceUseCase):
    async def execute(self, invoice_id: int) -> Invoice:
        return await self._load(invoice_id)


class ListInvoicesUseCase(InvoiceUseCase):
    """Filtered, paginated invoice listing."""

    async def execute(
        self,
        filters: InvoiceFilter | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> InvoicePage:
        store = await self._get_store()
        invoices = await store.list_invoices(filters, limit=limit, offset=offset)
        total = await store.count_invoices(filters)
        return InvoicePage(invoices=invoices, total=total, limit=limit, offset=offset)

    @staticmethod
    def to_response(page: InvoicePage) -> InvoiceListResponse:  # type: ignore[override]
        return InvoiceListResponse(
            invoices=[invoice_to_response(inv) for inv in page.invoices],
            total=page.total,
            limit=page.limit,
            offset=page.offset,
            has_more=page.offset + len(page.invoices) < page.total,
        )
