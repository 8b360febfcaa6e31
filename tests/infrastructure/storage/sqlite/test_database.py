"""Tests for LedgerDatabase connection handling."""

import asyncio

import aiosqlite
import pytest

from renovo.config.settings import StorageSettings
from renovo.infrastructure.storage.sqlite.database import LedgerDatabase


class TestPragmas:
    async def test_settings_applied_to_connection(self, ledger_database):
        async with ledger_database.connect() as conn:
            journal = await (await conn.execute("PRAGMA journal_mode")).fetchone()
            timeout = await (await conn.execute("PRAGMA busy_timeout")).fetchone()
            fks = await (await conn.execute("PRAGMA foreign_keys")).fetchone()

        assert journal[0] == "wal"
        assert timeout[0] == 5000
        assert fks[0] == 1

    async def test_journal_mode_configurable(self, tmp_path):
        settings = StorageSettings(data_dir=tmp_path, db_name="ledger.db", journal_mode="DELETE")
        database = LedgerDatabase(settings)
        try:
            async with database.connect() as conn:
                journal = await (await conn.execute("PRAGMA journal_mode")).fetchone()
        finally:
            await database.close()
        assert journal[0] == "delete"


class TestConnections:
    async def test_connection_reused(self, ledger_database):
        async with ledger_database.connect() as first:
            pass
        async with ledger_database.connect() as second:
            pass
        assert first is second
        assert ledger_database.open_connections == 1

    async def test_never_exceeds_pool_size(self, ledger_database):
        async def hold():
            async with ledger_database.connect():
                await asyncio.sleep(0.01)

        await asyncio.gather(*(hold() for _ in range(5)))
        assert ledger_database.open_connections == 2

    async def test_close_releases_connections(self, ledger_database):
        async with ledger_database.connect():
            pass
        await ledger_database.close()
        assert ledger_database.open_connections == 0


class TestTransaction:
    async def test_commits_on_success(self, ledger_database):
        async with ledger_database.transaction() as conn:
            await conn.execute(
                "INSERT INTO invoice_sequences (prefix, year, last_value) VALUES ('T', 2024, 7)"
            )
        async with ledger_database.connect() as conn:
            row = await (
                await conn.execute("SELECT last_value FROM invoice_sequences WHERE prefix = 'T'")
            ).fetchone()
        assert row[0] == 7

    async def test_rolls_back_on_error(self, ledger_database):
        with pytest.raises(RuntimeError):
            async with ledger_database.transaction(immediate=True) as conn:
                await conn.execute(
                    "INSERT INTO invoice_sequences (prefix, year, last_value) VALUES ('T', 2024, 7)"
                )
                raise RuntimeError("abort")

        async with ledger_database.connect() as conn:
            row = await (await conn.execute("SELECT COUNT(*) FROM invoice_sequences")).fetchone()
        assert row[0] == 0

    async def test_integrity_error_propagates(self, ledger_database):
        with pytest.raises(aiosqlite.IntegrityError):
            async with ledger_database.transaction() as conn:
                await conn.execute(
                    "INSERT INTO invoice_items (invoice_id, line_number, description) "
                    "VALUES (999, 1, 'Tile')"
                )
