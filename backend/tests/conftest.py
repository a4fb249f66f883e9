"""
Excalidraw Organizer Backend — Test Configuration (conftest.py)
================================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment variables are set BEFORE any organizer import so the
       settings singleton, the engine and the storage backend all point at
       a throwaway directory and a SQLite database.

Fixture Hierarchy:
    Autouse (every test):
    └── reset_state: rate limiters and CSRF tokens start empty

    Function-scoped:
    ├── database: creates all tables, drops them afterwards
    ├── test_client: HTTPX AsyncClient bound to the app (needs database)
    ├── auth_headers: signs up a fresh user and returns its Bearer header
    └── project: a project owned by the auth_headers user
"""

import os
import tempfile
import uuid
from typing import Any, Dict

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup (before any organizer import)
# ══════════════════════════════════════════════════════════════════════════

_TEST_ROOT = tempfile.mkdtemp(prefix="organizer_test_")

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_ROOT}/test.db"
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["STORAGE_ROOT"] = os.path.join(_TEST_ROOT, "storage")
os.environ["THUMBNAIL_CACHE_PATH"] = os.path.join(_TEST_ROOT, "cache", "thumbnails.json")
os.environ["STORAGE_RETRY_INITIAL_WAIT"] = "0"
os.environ["STORAGE_RETRY_MAX_WAIT"] = "0"
os.environ["FRONTEND_URL"] = "http://localhost:5173"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from organizer.database import Base, engine  # noqa: E402
from organizer.middleware.csrf import csrf_store  # noqa: E402
from organizer.middleware.rate_limit import reset_all_limiters  # noqa: E402
from organizer.services.thumbnail_cache import thumbnail_cache  # noqa: E402

import organizer.models  # noqa: E402,F401

STRONG_PASSWORD = "Sketch-Pad42!"

# 1x1 transparent PNG
PNG_DATA_URL = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)

SCENE: Dict[str, Any] = {
    "type": "excalidraw",
    "version": 2,
    "elements": [{"id": "rect-1", "type": "rectangle", "x": 10, "y": 20, "width": 100, "height": 50}],
    "appState": {"viewBackgroundColor": "#ffffff"},
    "files": {},
}


# ══════════════════════════════════════════════════════════════════════════
# Autouse Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def reset_state():
    """In-memory limiters and CSRF tokens would otherwise leak between tests."""
    reset_all_limiters()
    csrf_store.reset()
    yield
    reset_all_limiters()
    csrf_store.reset()


# ══════════════════════════════════════════════════════════════════════════
# Database and HTTP client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def database():
    """Fresh schema for each test (SQLite file in the temp directory)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    await thumbnail_cache.clear()
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def test_client(database):
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from organizer.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def signup(client: AsyncClient, email: str = None, name: str = "Ada Lovelace") -> Dict[str, Any]:
    """Creates a user and returns the signup response body."""
    response = await client.post(
        "/api/auth/signup",
        json={
            "name": name,
            "email": email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            "password": STRONG_PASSWORD,
        },
    )
    assert response.status_code == 201, response.text
    # Tests authenticate explicitly with the Bearer header
    client.cookies.clear()
    return response.json()


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def auth_headers(test_client) -> Dict[str, str]:
    body = await signup(test_client)
    return bearer(body["token"])


@pytest_asyncio.fixture
async def project(test_client, auth_headers) -> Dict[str, Any]:
    response = await test_client.post(
        "/api/projects", json={"name": "Architecture"}, headers=auth_headers
    )
    assert response.status_code == 201, response.text
    return response.json()["project"]
