"""
tests/conftest.py -- Shared test fixtures for Pennant integration tests.

This module provides:
  - _make_test_store(): creates an isolated in-memory FlagStore
  - _patch_lifespan(): wires test store, admin resolver and sessions into
    app.state, bypassing real startup
  - api_client: TestClient over the real API app
  - admin_cookies: a fresh admin session cookie, obtained through /auth/login
  - admin_login / settings_factory: known credentials and a Settings builder
  - environment: a project + environment pair seeded in the test store

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

The DEBUG env var must be set before any api/auth/core import so
get_settings() auto-generates SESSION_SECRET in dev mode rather than raising.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any api/auth/core import so get_settings() can
# auto-generate SESSION_SECRET in dev mode instead of raising.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.admin import AdminIdentityResolver
from auth.passwords import hash_password
from auth.session import SESSION_COOKIE_NAME, AdminSessions
from core.config import Settings
from flags.models import Environment, Project
from flags.store import FlagStore

TEST_ADMIN_EMAIL = "ops@example.com"
TEST_ADMIN_PASSWORD = "correct horse battery staple"  # noqa: S105
TEST_SESSION_SECRET = "test-session-secret-0123456789abcdef0123456789"  # noqa: S105

# Hashed once per session; scrypt is deliberately slow.
TEST_ADMIN_PASSWORD_HASH = hash_password(TEST_ADMIN_PASSWORD)


def make_settings(**overrides) -> Settings:
    """Build a Settings instance for tests without touching the lru_cache."""
    values = {
        "debug": True,
        "session_secret": TEST_SESSION_SECRET,
        "admin_email": TEST_ADMIN_EMAIL,
        "admin_password": "",
        "admin_password_hash": TEST_ADMIN_PASSWORD_HASH,
    }
    values.update(overrides)
    return Settings(**values)


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_store(db_suffix: str) -> FlagStore:
    """Create an isolated named shared-memory SQLite store.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. 'api').
    """
    return FlagStore(db_url=f"sqlite:///file:test_flags_{db_suffix}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(store: FlagStore, resolver: AdminIdentityResolver, sessions: AdminSessions):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-built test store and auth components into app.state so
    TestClient routes see an isolated DB and a known administrator.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.store = store
        app.state.admin_resolver = resolver
        app.state.sessions = sessions
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings_factory():
    """make_settings(), for tests that build their own resolver or sessions."""
    return make_settings


@pytest.fixture
def admin_login() -> dict[str, str]:
    """Valid login body for the test administrator."""
    return {"email": TEST_ADMIN_EMAIL, "password": TEST_ADMIN_PASSWORD}


@pytest.fixture(autouse=True)
def _reset_rate_limits() -> None:
    """The limiter is a module-level singleton; clear its counters per test."""
    limiter.reset()


@pytest.fixture(scope="module")
def api_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient over the real API app with a patched lifespan.

    Tests hit real route handlers, dependencies and exception handlers but
    use an isolated in-memory store and a known administrator.
    """
    store = _make_test_store(uuid.uuid4().hex[:8])
    settings = make_settings()
    resolver = AdminIdentityResolver(settings_factory=lambda: settings)
    sessions = AdminSessions(
        secret=settings.session_secret,
        production=settings.is_production,
        expire_seconds=3600,
    )

    app.router.lifespan_context = _patch_lifespan(store, resolver, sessions)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    store.close()


@pytest.fixture
def admin_cookies(api_client: TestClient) -> dict[str, str]:
    """Log in through the real endpoint and return the session cookie.

    The client's cookie jar is cleared afterwards so each test decides
    explicitly whether a request carries the session.
    """
    resp = api_client.post(
        "/api/v1/auth/login",
        json={"email": TEST_ADMIN_EMAIL, "password": TEST_ADMIN_PASSWORD},
    )
    assert resp.status_code == 200, resp.text
    token = resp.cookies[SESSION_COOKIE_NAME]
    api_client.cookies.clear()
    return {SESSION_COOKIE_NAME: token}


@pytest.fixture
def environment(api_client: TestClient) -> tuple[Project, Environment]:
    """A fresh project with one environment, keyed uniquely per test."""
    store: FlagStore = api_client.app.state.store
    suffix = uuid.uuid4().hex[:8]
    project = store.create_project(Project(key=f"web-{suffix}", name="Web"))
    env = store.create_environment(Environment(project_id=project.id, key="production", name="Production"))
    return project, env
