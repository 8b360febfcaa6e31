"""Versioned SQL schema migrations for the invoice ledger database."""

from renovo.infrastructure.storage.sqlite.migrations.migrator import (
    initialize_database,
    run_migrations,
)

__all__ = ["initialize_database", "run_migrations"]
