"""Tests for health check endpoints."""

import pytest


@pytest.mark.asyncio
async def test_health_check_returns_ok(client):
    """Health endpoint should return status ok."""
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


@pytest.mark.asyncio
async def test_health_check_reports_analytics_timezone(client):
    """Health endpoint should expose the configured analytics timezone."""
    response = await client.get("/health")

    assert response.json()["analytics_timezone"] == "UTC"


@pytest.mark.asyncio
async def test_health_check_includes_request_id_header(client):
    """Health endpoint should include X-Request-ID in response."""
    response = await client.get("/health")

    assert "X-Request-ID" in response.headers
    assert len(response.headers["X-Request-ID"]) > 0


@pytest.mark.integration
@pytest.mark.asyncio
async def test_readiness_check_connects_to_database(client):
    """Readiness endpoint should report a connected database."""
    response = await client.get("/health/ready")

    assert response.status_code == 200
    assert response.json()["database"] == "connected"


@pytest.mark.asyncio
async def test_readiness_check_reports_refused_connection(client, unreachable_order_store):
    """A refused connection is reported as unhealthy, not as a server error."""
    response = await client.get("/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "unhealthy"
    assert data["database"] == "disconnected"
    assert data["analytics_timezone"] == "UTC"
    unreachable_order_store.execute.assert_awaited_once()
