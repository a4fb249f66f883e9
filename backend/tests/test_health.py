"""
Excalidraw Organizer Backend — Health & Error Envelope Tests
=============================================================

What we test:
    ✅ /health, /health/db, /health/storage success and failure bodies
    ✅ /api index
    ✅ Unknown routes and the shared error envelope
    ✅ Security and request ID headers on every response
    ✅ Production: plain HTTP redirected to HTTPS, HSTS on secure requests
"""

from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from organizer import __version__
from organizer.middleware.security_headers import HSTS_VALUE, SecurityHeadersMiddleware
from organizer.services.storage_service import storage_service


class TestHealth:

    @pytest.mark.asyncio
    async def test_liveness(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["environment"] == "test"
        assert data["version"] == __version__
        assert data["uptime_seconds"] >= 0

    @pytest.mark.asyncio
    async def test_database_ok(self, test_client):
        response = await test_client.get("/health/db")
        assert response.status_code == 200
        assert response.json()["database"] == "connected"

    @pytest.mark.asyncio
    async def test_database_down(self, test_client):
        with patch(
            "organizer.routes.health.check_connection",
            AsyncMock(side_effect=ConnectionError("connection refused")),
        ):
            response = await test_client.get("/health/db")
        assert response.status_code == 500
        assert response.json() == {"status": "error", "database": "disconnected"}

    @pytest.mark.asyncio
    async def test_storage_ok(self, test_client):
        response = await test_client.get("/health/storage")
        assert response.status_code == 200
        data = response.json()
        assert data["storage"] == "connected"
        assert data["backend"] == "local"

    @pytest.mark.asyncio
    async def test_storage_down(self, test_client):
        with patch.object(storage_service, "health_check", AsyncMock(side_effect=OSError("bucket gone"))):
            response = await test_client.get("/health/storage")
        assert response.status_code == 500
        assert response.json() == {"status": "error", "storage": "disconnected", "backend": "local"}

    @pytest.mark.asyncio
    async def test_api_index(self, test_client):
        response = await test_client.get("/api")
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Excalidraw Organizer API"
        assert data["endpoints"]["public"] == "/api/public/{shareId}"


class TestErrorEnvelope:

    @pytest.mark.asyncio
    async def test_unknown_route(self, test_client):
        response = await test_client.get("/api/does-not-exist")
        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "not_found"
        assert data["message"] == "Route GET /api/does-not-exist not found"
        assert data["request_id"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "trace-123"})
        assert response.headers["X-Request-ID"] == "trace-123"

    @pytest.mark.asyncio
    async def test_security_headers(self, test_client):
        response = await test_client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "Strict-Transport-Security" not in response.headers


def headers_app(production: bool) -> FastAPI:
    app = FastAPI()
    app.add_middleware(SecurityHeadersMiddleware, production=production)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    return app


class TestHttpsEnforcement:

    @pytest_asyncio.fixture
    async def production_client(self):
        transport = ASGITransport(app=headers_app(production=True))
        async with AsyncClient(transport=transport, base_url="http://api.example.com") as client:
            yield client

    @pytest.mark.asyncio
    async def test_plain_http_is_redirected(self, production_client):
        response = await production_client.get("/ping?page=2")
        assert response.status_code == 301
        assert response.headers["location"] == "https://api.example.com/ping?page=2"

    @pytest.mark.asyncio
    async def test_forwarded_https_gets_hsts(self, production_client):
        response = await production_client.get("/ping", headers={"X-Forwarded-Proto": "https"})
        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert response.headers["Strict-Transport-Security"] == HSTS_VALUE
        assert response.headers["X-Frame-Options"] == "DENY"

    @pytest.mark.asyncio
    async def test_https_request_gets_hsts(self):
        transport = ASGITransport(app=headers_app(production=True))
        async with AsyncClient(transport=transport, base_url="https://api.example.com") as client:
            response = await client.get("/ping")
        assert response.status_code == 200
        assert response.headers["Strict-Transport-Security"] == HSTS_VALUE

    @pytest.mark.asyncio
    async def test_development_serves_plain_http_without_hsts(self):
        transport = ASGITransport(app=headers_app(production=False))
        async with AsyncClient(transport=transport, base_url="http://localhost") as client:
            response = await client.get("/ping")
        assert response.status_code == 200
        assert "Strict-Transport-Security" not in response.headers
        assert response.headers["X-Content-Type-Options"] == "nosniff"
