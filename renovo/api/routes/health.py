"""
Service and ledger database health endpoints.
"""

import time

from fastapi import APIRouter

from renovo.application.dto.responses import HealthResponse, LedgerHealthResponse
from renovo.config import get_logger, get_settings
from renovo.infrastructure.storage.sqlite.database import LedgerDatabase
from renovo.infrastructure.storage.sqlite.migrations.migrator import (
    discover_migrations,
    get_applied_migrations,
    get_current_version,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/health", tags=["health"])

_started = time.monotonic()


def _uptime() -> float:
    return time.monotonic() - _started


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Process liveness and uptime."""
    return HealthResponse(
        status="healthy",
        version=get_settings().app_version,
        uptime_seconds=_uptime(),
    )


async def _inspect_ledger(database: LedgerDatabase) -> LedgerHealthResponse:
    started = time.monotonic()
    async with database.connect() as conn:
        version = await get_current_version(conn)
        applied = await get_applied_migrations(conn)
        cursor = await conn.execute("SELECT COUNT(*) FROM invoices WHERE is_active = 1")
        row = await cursor.fetchone()

    return LedgerHealthResponse(
        available=True,
        schema_version=version,
        pending_migrations=[m.version for m in discover_migrations() if m.version not in applied],
        active_invoices=row[0] if row else 0,
        latency_ms=(time.monotonic() - started) * 1000,
    )


@router.get("/db", response_model=HealthResponse)
async def db_health() -> HealthResponse:
    """
    Ledger database check.

    Reads the schema version and active invoice count. Pending migrations
    report ``degraded``; an unreadable ledger reports ``unhealthy``.
    """
    from renovo.infrastructure.storage.sqlite import get_database

    try:
        ledger = await _inspect_ledger(get_database())
    except Exception as e:
        logger.warning("ledger_health_check_failed", error=str(e))
        ledger = LedgerHealthResponse(available=False, error=str(e))

    if not ledger.available:
        status = "unhealthy"
    elif ledger.pending_migrations:
        status = "degraded"
    else:
        status = "healthy"

    return HealthResponse(
        status=status,
        version=get_settings().app_version,
        uptime_seconds=_uptime(),
        database=ledger,
    )
