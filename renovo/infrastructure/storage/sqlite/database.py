"""
aiosqlite access to the invoice ledger file.

Connections are opened on demand up to ``StorageSettings.pool_size`` and
configured with ``StorageSettings.pragmas()``. Writes that allocate
invoice numbers open with ``BEGIN IMMEDIATE`` so the counter row is
locked before it is read.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from renovo.config import get_logger, get_settings
from renovo.config.settings import StorageSettings

logger = get_logger(__name__)


class LedgerDatabase:
    """Bounded set of reusable connections to one ledger database."""

    def __init__(self, settings: StorageSettings):
        self.settings = settings
        self._slots = asyncio.Semaphore(max(1, settings.pool_size))
        self._idle: list[aiosqlite.Connection] = []
        self._opened: list[aiosqlite.Connection] = []

    @property
    def path(self) -> Path:
        return self.settings.db_path

    @property
    def open_connections(self) -> int:
        return len(self._opened)

    async def _open(self) -> aiosqlite.Connection:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(self.path)
        conn.row_factory = aiosqlite.Row
        for pragma in self.settings.pragmas():
            await conn.execute(pragma)
        self._opened.append(conn)
        logger.debug("ledger_connection_opened", db_path=str(self.path), open=len(self._opened))
        return conn

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Borrow a connection for reads. Waits while all slots are taken."""
        async with self._slots:
            conn = self._idle.pop() if self._idle else await self._open()
            try:
                yield conn
            finally:
                self._idle.append(conn)

    @asynccontextmanager
    async def transaction(self, immediate: bool = False) -> AsyncIterator[aiosqlite.Connection]:
        """
        Borrow a connection inside a transaction.

        Commits when the block exits cleanly and rolls back otherwise.
        """
        async with self.connect() as conn:
            if immediate:
                await conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    async def close(self) -> None:
        """Close every connection this database has opened."""
        closed = len(self._opened)
        for conn in self._opened:
            await conn.close()
        self._opened.clear()
        self._idle.clear()
        logger.info("ledger_database_closed", db_path=str(self.path), connections=closed)


_database: LedgerDatabase | None = None


def get_database() -> LedgerDatabase:
    """Ledger database for the configured storage settings."""
    global _database
    if _database is None:
        _database = LedgerDatabase(get_settings().storage)
    return _database


async def close_database() -> None:
    global _database
    if _database is not None:
        await _database.close()
        _database = None
