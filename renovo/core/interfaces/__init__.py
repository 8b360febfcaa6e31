"""Core interfaces (ports) for dependency injection."""

from renovo.core.interfaces.invoice_store import IInvoiceStore

__all__ = [
    "IInvoiceStore",
]
