"""
Pytest configuration and fixtures for DocHub tests.

Everything runs against MemoryStore; no database is needed.
"""

from __future__ import annotations

import os

# Set test environment variables before importing config
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only")
os.environ.setdefault("DATABASE_URL", "")

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from backend.auth import create_jwt  # noqa: E402
from backend.config import settings  # noqa: E402
from backend.main import app  # noqa: E402
from backend.models.user import User  # noqa: E402
from backend.repos.memory_store import MemoryStore  # noqa: E402
from engine.hub.types import LINKS, SECTIONS  # noqa: E402


@pytest.fixture(autouse=True)
def profile_dir(tmp_path, monkeypatch):
    """Admin-mode files go to a per-test directory."""
    path = tmp_path / "profiles"
    monkeypatch.setattr(settings, "PROFILE_DIR", path)
    return path


@pytest.fixture
def store():
    """Fresh in-memory store attached to the app."""
    store = MemoryStore()
    app.state.store = store
    return store


@pytest.fixture
def seeded(store):
    """
    Two sections and three links:

        s1 Engineering   r1 Deploy Runbook (file), r2 Owners (table)
        s2 Design        r3 Brand guide (file)
    """
    store.seed(SECTIONS, "s1", {"title": "Engineering", "description": "Build docs", "color": "bg-blue-100"})
    store.seed(SECTIONS, "s2", {"title": "Design", "description": "Brand docs"})
    store.seed(
        LINKS,
        "r1",
        {
            "title": "Deploy Runbook",
            "type": "file",
            "url": "https://wiki.test/runbook",
            "tags": ["ops"],
            "sectionId": "s1",
        },
    )
    store.seed(
        LINKS,
        "r2",
        {
            "title": "Owners",
            "type": "table",
            "tableData": {
                "columns": [{"id": "c1", "name": "Service"}, {"id": "c2", "name": "Owner"}],
                "rows": [{"id": "row1", "data": {"c1": "api", "c2": "ada"}}],
            },
            "sectionId": "s1",
        },
    )
    store.seed(
        LINKS,
        "r3",
        {"title": "Brand guide", "url": "https://design.test/brand", "sectionId": "s2"},
    )
    return store


@pytest.fixture
def user():
    return User(id="user-1", email="ada@example.com", name="Ada")


@pytest.fixture
def session_token(user):
    return create_jwt(user)


@pytest_asyncio.fixture
async def async_client(store):
    """Unauthenticated async HTTP client against the ASGI app."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest_asyncio.fixture
async def authed_client(store, session_token):
    """Async HTTP client carrying a valid session cookie."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
        cookies={"session": session_token},
    ) as client:
        yield client
