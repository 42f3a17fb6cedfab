"""
tests/conftest.py -- Shared test fixtures for locallogin.

This module provides:
  - hasher: PasswordHasher with the minimum bcrypt cost (4) so tests stay fast
  - store: a fresh UserStore on a private in-memory SQLite database
  - _make_test_store(): named shared-memory SQLite store for TestClient runs
  - _patch_lifespan(): wires test collaborators into app.state
  - client: TestClient with follow_redirects=False

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
TestClient because route handlers run in a thread pool. Plain :memory: DBs are
per-connection and would present a blank schema to each worker thread. The
named URI format (file:name?mode=memory&cache=shared&uri=true) shares one
in-memory instance across all connections in the same process.

The DEBUG env var must be set before any api/ or core/ import so
get_settings() auto-generates SECRET_KEY in dev mode rather than raising.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from asgi import app
from auth.passwords import PasswordHasher
from auth.store import UserStore

# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    """Private in-memory store. SingletonThreadPool keeps one connection per thread."""
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


# ---------------------------------------------------------------------------
# App-level helpers
# ---------------------------------------------------------------------------


def _make_test_store() -> UserStore:
    """Create an isolated named shared-memory SQLite store.

    A uuid in the name keeps every test's database separate.
    """
    name = f"test_auth_{uuid.uuid4().hex}"
    return UserStore(f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(user_store: UserStore, hasher: PasswordHasher, equalize_timing: bool = False):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.hasher = hasher
        app.state.login_timing_equalization = equalize_timing
        yield

    return test_lifespan


@pytest.fixture
def app_store() -> Generator[UserStore, None, None]:
    s = _make_test_store()
    yield s
    s.close()


@pytest.fixture
def client(app_store: UserStore, hasher: PasswordHasher) -> Generator[TestClient, None, None]:
    """Yield a TestClient bound to a fresh store.

    follow_redirects=False lets tests assert on redirect locations and on the
    Set-Cookie header of the redirect response itself. The client keeps its
    cookie jar between requests, so a login carries over to later calls.
    """
    app.router.lifespan_context = _patch_lifespan(app_store, hasher)
    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as c:
        yield c
