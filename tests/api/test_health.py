"""API tests for health endpoints."""

from unittest.mock import MagicMock, patch

import aiosqlite
import pytest
from httpx import ASGITransport, AsyncClient

from renovo.api.main import app

GET_DATABASE = "renovo.infrastructure.storage.sqlite.get_database"


@pytest.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def test_health(client):
    response = await client.get("/api/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["uptime_seconds"] >= 0
    assert data["database"] is None


async def test_root_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_request_id_echoed(client):
    response = await client.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"


async def test_db_health_reports_schema(client, ledger_database, invoice_store, make_invoice):
    await invoice_store.create_invoice(make_invoice(invoice_number="INV-2024-001"))

    with patch(GET_DATABASE, return_value=ledger_database):
        response = await client.get("/api/health/db")

    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"]["available"] is True
    assert data["database"]["schema_version"] == "002"
    assert data["database"]["pending_migrations"] == []
    assert data["database"]["active_invoices"] == 1


async def test_db_health_pending_migrations_degraded(client, ledger_database):
    async with ledger_database.transaction() as conn:
        await conn.execute("DELETE FROM schema_migrations WHERE version = '002'")

    with patch(GET_DATABASE, return_value=ledger_database):
        response = await client.get("/api/health/db")

    data = response.json()
    assert data["status"] == "degraded"
    assert data["database"]["schema_version"] == "001"
    assert data["database"]["pending_migrations"] == ["002"]


async def test_db_health_unavailable(client):
    with patch(GET_DATABASE, MagicMock(side_effect=aiosqlite.OperationalError("disk gone"))):
        response = await client.get("/api/health/db")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "unhealthy"
    assert data["database"]["available"] is False
    assert data["database"]["error"] == "disk gone"
