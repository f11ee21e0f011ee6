"""
tests/conftest.py -- Shared test fixtures for News API tests.

This module provides:
  - make_sql_store(): isolated named shared-memory SQLite store
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - store: parametrized fixture yielding a MemoryStore and a SQLStore
  - api_client: TestClient for the authenticated deployment
  - open_client: TestClient for the open deployment (AUTH_REQUIRED=false)
  - register_and_login(): helper returning (user_id, token)

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.

JWT_SECRET must be set before any api/ import: api.main reads settings at
import time and refuses to load without a secret.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set the environment before any api/ or core/ import.
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-news-api-0123456789abcdef")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.tokens import TokenService
from core.config import Settings
from store import MemoryStore, NewsStore, SQLStore

TEST_SECRET = os.environ["JWT_SECRET"]

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_sql_store() -> SQLStore:
    """Create an isolated named shared-memory SQLite store.

    Each call gets a fresh database name so tests never see each other's rows.
    """
    name = f"test_news_{uuid.uuid4().hex}"
    return SQLStore(db_url=f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(store: NewsStore, settings: Settings):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store, settings and a token service into app.state so
    TestClient routes see isolated state rather than the configured backend.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = settings
        app.state.store = store
        app.state.tokens = TokenService(settings.jwt_secret, settings.token_expire_seconds)
        yield

    return test_lifespan


def register_and_login(client: TestClient, username: str, password: str = "pw1") -> tuple[str, str]:
    """Register username and log in. Returns (user_id, token)."""
    resp = client.post("/register", json={"username": username, "password": password})
    assert resp.status_code == 201, resp.text
    user_id = resp.json()["id"]
    resp = client.post("/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return user_id, resp.json()["token"]


def unique_name(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(params=["memory", "sql"])
def store(request) -> Generator[NewsStore, None, None]:
    """Yield each backend in turn so store tests run against both."""
    s: NewsStore = MemoryStore() if request.param == "memory" else make_sql_store()
    yield s
    s.close()


# ---------------------------------------------------------------------------
# Client fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module", params=["memory", "sql"])
def api_client(request) -> Generator[TestClient, None, None]:
    """Yield a TestClient for the authenticated deployment, once per backend.

    The client uses the real FastAPI app with a patched lifespan, so tests hit
    real route handlers but use isolated stores.
    """
    s: NewsStore = MemoryStore() if request.param == "memory" else make_sql_store()
    settings = Settings(jwt_secret=TEST_SECRET, storage_backend="memory", auth_required=True)
    app.router.lifespan_context = _patch_lifespan(s, settings)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    s.close()


@pytest.fixture(scope="module")
def open_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient for the open deployment (no auth on /news)."""
    s = make_sql_store()
    settings = Settings(jwt_secret=TEST_SECRET, storage_backend="database", auth_required=False)
    app.router.lifespan_context = _patch_lifespan(s, settings)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    s.close()


@pytest.fixture
def owner_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient with ENFORCE_AUTHOR_OWNERSHIP on."""
    s = MemoryStore()
    settings = Settings(jwt_secret=TEST_SECRET, storage_backend="memory", enforce_author_ownership=True)
    app.router.lifespan_context = _patch_lifespan(s, settings)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client
