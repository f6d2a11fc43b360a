"""
tests/conftest.py -- Shared test fixtures for CredStore tests.

This module provides:
  - _make_test_store(): creates an isolated shared-memory SQLite UserStore
  - _patch_lifespan(): wires a test AuthService into app.state, bypassing real startup
  - api_client: TestClient plus a pre-registered user and its token
  - tokens / memory_service: unit-test building blocks with no HTTP involved

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

DEBUG and SECRET_KEY must be set before any api/ import so get_settings()
validates at module load of api/main.py.

bcrypt runs at cost 4 in tests (AuthService(bcrypt_rounds=4)); the default
cost of 12 is asserted separately in test_tokens.py.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set env before any api/core import so get_settings() succeeds.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789abcdef0123456789")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.memory_store import InMemoryUserStore
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer

TEST_SECRET = "unit-test-secret-key-0123456789abcdef012345"
TEST_ROUNDS = 4

# Credentials of the user pre-registered by the api_client fixture.
API_USER = {"username": "testuser", "email": "testuser@example.com", "password": "testpass123"}


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_store(db_suffix: str) -> UserStore:
    """Create an isolated named shared-memory SQLite store.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. 'api', 'store').
    """
    return UserStore(db_url=f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(service: AuthService):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = service.repo
        app.state.auth_service = service
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def tokens() -> TokenIssuer:
    return TokenIssuer(TEST_SECRET)


@pytest.fixture
def memory_service(tokens: TokenIssuer) -> AuthService:
    """AuthService over a fresh InMemoryUserStore."""
    return AuthService(InMemoryUserStore(), tokens, bcrypt_rounds=TEST_ROUNDS)


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers but use an isolated in-memory SQLite store. The
    API_USER account is registered before the client starts.
    """
    store = _make_test_store(request.module.__name__.rsplit(".", 1)[-1])
    service = AuthService(store, TokenIssuer(TEST_SECRET), bcrypt_rounds=TEST_ROUNDS)
    result = service.register(API_USER["username"], API_USER["email"], API_USER["password"])

    app.router.lifespan_context = _patch_lifespan(service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, result.token, result.user_id

    store.close()
