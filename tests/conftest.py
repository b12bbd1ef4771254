"""
tests/conftest.py -- Shared test fixtures for Taskboard integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for accounts + tasks
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api: a fresh TestClient (own cookie jar, own databases) per test
  - logged_in: the same, after registering and logging in yusuke/toguro

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

Environment must be set before any app import:
  DEBUG            -- get_settings() auto-generates SECRET_KEY instead of raising
  ALLOWED_HOSTS    -- TestClient sends Host: testserver
  LOGIN_RATE_LIMIT -- the suite logs in far more than 10 times a minute
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.session import SessionCodec, SessionState
from auth.store import AccountStore
from core.config import get_settings
from tasks.store import TaskStore

USERNAME = "yusuke"
PASSWORD = "toguro"


@dataclass
class Harness:
    client: TestClient
    accounts: AccountStore
    tasks: TaskStore
    token: int | None = None
    account_id: int | None = None

    def auth(self, token: int | None = None) -> dict[str, str]:
        """Authorization header for the logged-in token (or an explicit one)."""
        return {"Authorization": f"Bearer {self.token if token is None else token}"}

    def session(self) -> SessionState | None:
        """Open the session cookie currently held by the client."""
        settings = get_settings()
        raw = self.client.cookies.get(settings.session_cookie_name)
        if raw is None:
            return None
        return SessionCodec(settings.secret_key, settings.session_ttl_seconds).decode(raw)


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores() -> tuple[AccountStore, TaskStore]:
    """Create named shared-memory SQLite stores unique to one test."""
    suffix = uuid.uuid4().hex
    auth_url = f"sqlite:///file:test_auth_{suffix}?mode=memory&cache=shared&uri=true"
    tasks_url = f"sqlite:///file:test_tasks_{suffix}?mode=memory&cache=shared&uri=true"
    return AccountStore(db_url=auth_url), TaskStore(db_url=tasks_url)


def _patch_lifespan(account_store: AccountStore, task_store: TaskStore):
    """Return a lifespan that installs the given stores instead of opening real ones."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.account_store = account_store
        app.state.task_store = task_store
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def api() -> Generator[Harness, None, None]:
    """Yield a Harness with an anonymous client and empty stores.

    follow_redirects=False keeps 302 lookup responses (which carry a JSON
    body and no Location) as they are.
    """
    account_store, task_store = _make_test_stores()
    app.router.lifespan_context = _patch_lifespan(account_store, task_store)

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield Harness(client=client, accounts=account_store, tasks=task_store)

    account_store.close()
    task_store.close()


@pytest.fixture
def logged_in(api: Harness) -> Harness:
    """Register yusuke/toguro through the API and log in; the client holds the cookie."""
    resp = api.client.post("/users/register", json={"username": USERNAME, "password": PASSWORD})
    assert resp.status_code == 201, resp.text
    resp = api.client.post("/login", json={"username": USERNAME, "password": PASSWORD})
    assert resp.status_code == 200, resp.text
    api.token = resp.json()["token"]
    api.account_id = resp.json()["id"]
    return api
