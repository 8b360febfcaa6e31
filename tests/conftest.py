"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Callable
from datetime import date, timedelta
from pathlib import Path

import pytest

from renovo.config.settings import StorageSettings
from renovo.core.entities import (
    DiscountPolicy,
    DiscountType,
    Invoice,
    LineItem,
    RecurringFrequency,
    RecurringPattern,
    TaxEntry,
)
from renovo.core.services import apply_totals


def _make_invoice(**overrides) -> Invoice:
    today = date.today()
    data = {
        "client_id": "client-1",
        "issue_date": today,
        "due_date": today + timedelta(days=30),
        "items": [LineItem(description="Kitchen demolition", quantity=1, rate=100)],
        "taxes": [TaxEntry(name="Sales tax", rate=10)],
        "discount": DiscountPolicy(type=DiscountType.PERCENTAGE, value=10),
    }
    data.update(overrides)
    invoice = Invoice(**data)
    apply_totals(invoice)
    return invoice


@pytest.fixture
def make_invoice() -> Callable[..., Invoice]:
    """
    Factory for invoices with derived totals.

    Default: one line of 100.00, 10% tax and a 10% discount, so the
    total is 100.00.
    """
    return _make_invoice


@pytest.fixture
def sample_invoice() -> Invoice:
    """Draft invoice totalling 100.00."""
    return _make_invoice(invoice_number="INV-2024-001")


@pytest.fixture
def recurring_invoice() -> Invoice:
    """Monthly recurring invoice due Jan 31st."""
    return _make_invoice(
        invoice_number="INV-2024-010",
        issue_date=date(2024, 1, 1),
        due_date=date(2024, 1, 31),
        is_recurring=True,
        recurring_pattern=RecurringPattern(frequency=RecurringFrequency.MONTHLY),
    )


# SQLite fixtures


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Create a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture
def storage_settings(temp_db_path: Path) -> StorageSettings:
    """Storage settings pointing at the temporary database."""
    return StorageSettings(
        data_dir=temp_db_path.parent,
        db_name=temp_db_path.name,
        pool_size=2,
        busy_timeout=5000,
    )


@pytest.fixture
async def initialized_db(temp_db_path: Path) -> Path:
    """Temporary database with all migrations applied."""
    from renovo.infrastructure.storage.sqlite.migrations.migrator import initialize_database

    await initialize_database(temp_db_path, create_backup_before=False)
    return temp_db_path


@pytest.fixture
async def ledger_database(initialized_db: Path, storage_settings) -> AsyncGenerator:
    """LedgerDatabase over the migrated temporary database."""
    from renovo.infrastructure.storage.sqlite.database import LedgerDatabase

    database = LedgerDatabase(storage_settings)
    yield database
    await database.close()


@pytest.fixture
async def invoice_store(ledger_database) -> AsyncGenerator:
    """SQLiteInvoiceStore bound to the temporary database."""
    from renovo.infrastructure.storage.sqlite.invoice_store import SQLiteInvoiceStore

    yield SQLiteInvoiceStore(number_padding=3, database=ledger_database)
