"""API tests for health endpoints."""

from unittest.mock import AsyncMock

from httpx import ASGITransport, AsyncClient

from plotdesk.api.dependencies import get_rem_store
from plotdesk.api.main import app


class TestHealthAPI:
    async def test_root_health(self, app_client):
        response = await app_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data

    async def test_api_health_includes_scheduler(self, app_client):
        response = await app_client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["uptime_seconds"] >= 0
        assert data["scheduler"]["running"] is False

    async def test_db_health_memory_backend(self, app_client):
        response = await app_client.get("/api/health/db")

        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == {"available": True, "backend": "memory", "error": None}

    async def test_db_health_unreachable(self):
        store = AsyncMock()
        store.backend_name = "sqlite"
        store.ping.side_effect = RuntimeError("database is locked")
        app.dependency_overrides[get_rem_store] = lambda: store

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/api/health/db")

        app.dependency_overrides.clear()

        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["database"]["available"] is False
        assert data["database"]["error"] == "database is locked"

    async def test_request_id_echoed(self, app_client):
        response = await app_client.get("/health", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"
        assert response.headers["X-Response-Time"].endswith("ms")
