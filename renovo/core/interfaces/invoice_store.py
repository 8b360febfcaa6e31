"""Abstract interface for invoice ledger storage."""

from abc import ABC, abstractmethod
from datetime import date

from renovo.core.entities.invoice import Invoice
from renovo.core.entities.summary import InvoiceFilter, InvoiceSummary


class IInvoiceStore(ABC):
    """Interface for invoice persistence."""

    @abstractmethod
    async def create_invoice(self, invoice: Invoice) -> Invoice:
        """
        Persist a new invoice with items, taxes, payments and history.

        Raises:
            DuplicateInvoiceNumberError: if the invoice number is taken
        """
        pass

    @abstractmethod
    async def get_invoice(self, invoice_id: int) -> Invoice | None:
        """Get invoice by ID with all child collections."""
        pass

    @abstractmethod
    async def get_invoice_by_number(self, invoice_number: str) -> Invoice | None:
        """Get invoice by its invoice number."""
        pass

    @abstractmethod
    async def update_invoice(self, invoice: Invoice) -> Invoice:
        """
        Write the invoice back if its version is unchanged in storage.

        Returns the invoice with the incremented version.

        Raises:
            InvoiceNotFoundError: if the invoice does not exist
            ConcurrentModificationError: if the stored version differs
        """
        pass

    @abstractmethod
    async def create_occurrence(self, template: Invoice, occurrence: Invoice) -> Invoice:
        """
        Save an advanced recurring template and insert its new occurrence
        in one transaction.

        Raises:
            ConcurrentModificationError: if the template's stored version differs
            DuplicateInvoiceNumberError: if the occurrence's number is taken
        """
        pass

    @abstractmethod
    async def list_invoices(
        self,
        filters: InvoiceFilter | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Invoice]:
        """List invoices matching filters, newest first."""
        pass

    @abstractmethod
    async def count_invoices(self, filters: InvoiceFilter | None = None) -> int:
        """Count invoices matching filters."""
        pass

    @abstractmethod
    async def list_overdue(self, today: date) -> list[Invoice]:
        """Active open invoices whose due date is before ``today``."""
        pass

    @abstractmethod
    async def list_open(self) -> list[Invoice]:
        """Active invoices in a collectable status."""
        pass

    @abstractmethod
    async def reserve_invoice_number(self, prefix: str, year: int) -> str:
        """Atomically allocate the next number for prefix and year."""
        pass

    @abstractmethod
    async def get_summary(
        self, since: date | None = None, today: date | None = None
    ) -> InvoiceSummary:
        """Per-status roll-up of active invoices created on or after ``since``."""
        pass
