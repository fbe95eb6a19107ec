"""
tests/conftest.py -- Shared test fixtures for MediaVault tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for users/tokens + media
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient running the real app against those stores
  - register(): helper that registers a user and returns its token
  - media_payload(): a valid POST /media/addMedia body

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

SECRET_KEY, DEBUG and RATE_LIMIT_ENABLED must be set before any project
import: get_settings() is cached and api.limiter reads it at import time.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: configure the environment before any api/auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789abcdef0123456789abcdef")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.ledger import TokenLedger
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.config import get_settings
from media.store import MediaStore

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, MediaStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    auth_url = f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true"
    media_url = f"sqlite:///file:test_media_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=auth_url), MediaStore(db_url=media_url)


def _patch_lifespan(user_store: UserStore, media_store: MediaStore):
    """Return an async context manager that replaces the real lifespan.

    The purge_task is a long-sleeping coroutine so shutdown can cancel a real
    asyncio.Task, exactly as the production lifespan does.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        settings = get_settings()
        app.state.settings = settings
        app.state.user_store = user_store
        app.state.media_store = media_store
        app.state.ledger = TokenLedger(user_store, TokenCodec(settings.secret_key), ttl_hours=settings.token_ttl_hours)
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request: pytest.FixtureRequest) -> Generator[TestClient, None, None]:
    """Yield a TestClient for the real FastAPI app with isolated in-memory stores.

    Stores are reachable through client.app.state for tests that need to
    inspect or tamper with the ledger directly.
    """
    user_store, media_store = _make_test_stores(request.module.__name__.rsplit(".", 1)[-1])
    app.router.lifespan_context = _patch_lifespan(user_store, media_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    user_store.close()
    media_store.close()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def register(client: TestClient, username: str, password: str = "secret-pass", email: str | None = None) -> str:
    """Register username and return the token from the 201 response."""
    resp = client.post(
        "/api/v1/register",
        json={"user": username, "email": email or f"{username}@example.com", "password": password},
    )
    assert resp.status_code == 201, f"Expected 201, got {resp.status_code}: {resp.text}"
    return resp.json()["token"]


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def media_payload(**overrides) -> dict:
    payload = {
        "name": "Spirited Away",
        "completedDate": "2023-08-20",
        "score": 9.5,
        "poster": "https://img.example.com/spirited.jpg",
        "mediaType": "Anime",
        "language": "Sub-Spanish",
        "comment": "rewatch",
    }
    payload.update(overrides)
    return payload
