"""
tests/conftest.py -- Shared test fixtures for the Chirpy auth tests.

This module provides:
  - secret: a fixed signing secret for unit tests
  - store: a fresh in-memory AuthStore per test
  - sessions: a SessionManager over that store (bcrypt cost 4)
  - api_client: TestClient over the real FastAPI app with a patched lifespan

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread.

Environment variables must be set before any api/core import so
get_settings() auto-generates AUTH_SECRET in dev mode, uses cheap bcrypt
rounds, and does not throttle the login calls made by the test suite.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any core/api import (get_settings() is lru_cached).
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.sessions import SessionManager
from auth.store import AuthStore
from core.config import get_settings

SECRET = "LeyPhlefurapwopEitKo-test-signing-secret"
TEST_ROUNDS = 4


@pytest.fixture
def secret() -> str:
    return SECRET


@pytest.fixture
def store() -> Generator[AuthStore, None, None]:
    s = AuthStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def sessions(store: AuthStore) -> SessionManager:
    return SessionManager(store, secret=SECRET, hash_rounds=TEST_ROUNDS)


def _patch_lifespan(store: AuthStore, sessions: SessionManager):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test objects into app.state so TestClient routes see an
    isolated test DB rather than the configured database file.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.store = store
        app.state.sessions = sessions
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, SessionManager], None, None]:
    """Yield (client, sessions) for API integration tests.

    One shared-memory database per test module. Tests register their own
    users with unique emails.
    """
    db_name = f"test_auth_{uuid.uuid4().hex}"
    store = AuthStore(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    sessions = SessionManager.from_settings(store, get_settings())

    app.router.lifespan_context = _patch_lifespan(store, sessions)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, sessions

    store.close()
