"""
tests/conftest.py -- Shared test fixtures for Pharmabolt integration tests.

This module provides:
  - _make_test_db(): creates an isolated named shared-memory SQLite database
  - _patch_lifespan(): wires the test database and token service into
    app.state, bypassing real startup
  - api: module-scoped ApiHarness (TestClient + seeded admin and user tokens)
  - db / conn: a fresh in-memory database per test for store unit tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

The DEBUG env var must be set before any api/core import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Connection

from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import TokenService, hash_password
from core.db import Database

TEST_SECRET = "pharmabolt-test-secret-key-0123456789abcdef"

ADMIN_EMAIL = "admin@example.org"
ADMIN_PASSWORD = "adminpass123"
USER_EMAIL = "user@example.org"
USER_PASSWORD = "userpass123"


@dataclass
class ApiHarness:
    client: TestClient
    tokens: TokenService
    admin_id: int
    admin_token: str
    user_id: int
    user_token: str

    def admin(self) -> dict:
        return auth_header(self.admin_token)

    def user(self) -> dict:
        return auth_header(self.user_token)


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register_payload(**overrides) -> dict:
    """A registration body that passes validation; override fields per test."""
    body = {
        "full_name": "Jane Doe",
        "email": "jane@example.com",
        "phone_no": "555-0100",
        "password": "correct-horse",
        "address": "1 Main Street",
        "city": "Springfield",
        "state": "Illinois",
    }
    body.update(overrides)
    return body


# ---------------------------------------------------------------------------
# Database helpers
# ---------------------------------------------------------------------------


def _make_test_db(db_suffix: str) -> Database:
    """Create an isolated named shared-memory SQLite database with the schema.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    db = Database(f"sqlite:///file:test_pharmabolt_{db_suffix}?mode=memory&cache=shared&uri=true")
    db.create_all()
    return db


def _seed_user(db: Database, email: str, password: str, role: str) -> int:
    with db.connect() as conn:
        return UserStore(conn).create_user(
            User(
                full_name=f"Seeded {role.title()}",
                email=email,
                phone_no="555-0000",
                hashed_password=hash_password(password),
                address="1 Test Road",
                city="Testville",
                state="Teststate",
                role=role,
            )
        )


def _patch_lifespan(db: Database, tokens: TokenService):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.db = db
        app.state.tokens = tokens
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped API fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api(request) -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness backed by a database private to the test module.

    One admin and one regular user are created before the client starts;
    their tokens are issued by the same TokenService the app verifies with.
    """
    db = _make_test_db(request.module.__name__.rsplit(".", 1)[-1])
    tokens = TokenService(TEST_SECRET)

    admin_id = _seed_user(db, ADMIN_EMAIL, ADMIN_PASSWORD, "admin")
    user_id = _seed_user(db, USER_EMAIL, USER_PASSWORD, "user")

    app.router.lifespan_context = _patch_lifespan(db, tokens)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiHarness(
            client=client,
            tokens=tokens,
            admin_id=admin_id,
            admin_token=tokens.issue(admin_id, "admin"),
            user_id=user_id,
            user_token=tokens.issue(user_id, "user"),
        )

    db.close()


# ---------------------------------------------------------------------------
# Function-scoped store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db() -> Generator[Database, None, None]:
    database = Database("sqlite:///:memory:")
    database.create_all()
    yield database
    database.close()


@pytest.fixture
def conn(db: Database) -> Generator[Connection, None, None]:
    with db.connect() as connection:
        yield connection
