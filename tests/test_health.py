"""Health endpoint tests."""

import pytest

from conftest import FakeConnection


@pytest.mark.asyncio
async def test_health_returns_ok(client):
    """Health endpoint should return server status and version."""
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["server"] == "ok"
    assert "version" in data


@pytest.mark.asyncio
async def test_health_counts_live_subscribers(client, app):
    resp = await client.get("/api/health")
    assert resp.json()["subscribers"] == 0

    app.state.hub.accept(FakeConnection())
    app.state.hub.accept(FakeConnection())

    resp = await client.get("/api/health")
    assert resp.json()["subscribers"] == 2
