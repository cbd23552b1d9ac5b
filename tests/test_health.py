"""Health endpoint tests."""

import pytest


class DeadStore:
    async def ping(self) -> bool:
        return False


@pytest.mark.asyncio
async def test_health_returns_ok(client):
    """Health endpoint should return server status and version."""
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["server"] == "ok"
    assert data["database"] == "ok"
    assert data["session_store"] == "ok"
    assert "version" in data


@pytest.mark.asyncio
async def test_health_degraded_when_session_store_down(client, app):
    app.state.sessions.store = DeadStore()
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "degraded"
    assert resp.json()["session_store"].startswith("error")
