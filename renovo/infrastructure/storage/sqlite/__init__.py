"""SQLite-backed invoice ledger storage."""

from renovo.infrastructure.storage.sqlite.database import (
    LedgerDatabase,
    close_database,
    get_database,
)
from renovo.infrastructure.storage.sqlite.invoice_store import SQLiteInvoiceStore

_invoice_store: SQLiteInvoiceStore | None = None


async def get_invoice_store() -> SQLiteInvoiceStore:
    """Get singleton invoice store instance."""
    global _invoice_store
    if _invoice_store is None:
        _invoice_store = SQLiteInvoiceStore()
    return _invoice_store


__all__ = [
    "LedgerDatabase",
    "SQLiteInvoiceStore",
    "close_database",
    "get_database",
    "get_invoice_store",
]
