"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of merzah.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

from datetime import UTC, datetime  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite doesn't support JSONB natively, but SQLAlchemy's JSON type works.
# We register a custom type compiler so SQLite renders JSONB as TEXT.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from merzah.config import MerzahConfig  # noqa: E402
from merzah.database.models import Base, Event, Mosque  # noqa: E402

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent).

    Also maps BigInteger → INTEGER so autoincrement works on SQLite.
    """
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy import BigInteger
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    @compiles(BigInteger, "sqlite")
    def _compile_bigint_as_integer(type_, compiler, **kw):
        return "INTEGER"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


def utc(*args: int) -> datetime:
    """Shorthand for an aware UTC datetime."""
    return datetime(*args, tzinfo=UTC)


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Merzah tables.

    JSONB columns are transparently mapped to TEXT for SQLite compatibility.
    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used by ``run_db``).
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a transactional session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def mosque_id(db_engine: Engine) -> int:
    """A single mosque row to hang events on."""
    with Session(db_engine) as session:
        mosque = Mosque(name="Masjid Al-Noor", street="1 Main St", city="Springfield")
        session.add(mosque)
        session.commit()
        return mosque.id


def insert_event(engine: Engine, mosque_id: int, **overrides) -> int:
    """Insert an Event row directly, bypassing validation.  Returns its id."""
    values = {
        "mosque_id": mosque_id,
        "title": "Weekly Halaqah",
        "description": "Tafsir circle after Maghrib",
        "category": "halaqah",
        "timezone": "UTC",
        "date": utc(2026, 1, 1, 18),
        "is_recurring": True,
        "recurrence_pattern": "weekly",
        "recurrence_end_date": utc(2026, 4, 1, 18),
    }
    values.update(overrides)
    with Session(engine) as session:
        event = Event(**values)
        session.add(event)
        session.commit()
        return event.id


def make_token(sub: str = "1001", username: str = "Member", is_admin: bool = False) -> str:
    """Create a signed JWT for API tests."""
    import jwt

    from merzah.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode(
        {"sub": sub, "username": username, "is_admin": is_admin},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


def make_admin_token(sub: str = "99999", username: str = "FixtureAdmin") -> str:
    """Create an admin JWT.  Usable as both a fixture and a factory function."""
    return make_token(sub=sub, username=username, is_admin=True)


@pytest.fixture
def admin_token():
    """Generate a valid admin JWT for use in API integration tests."""
    return make_admin_token()


@pytest.fixture
def user_token():
    return make_token()


@pytest.fixture
def test_config() -> MerzahConfig:
    return MerzahConfig(platform_name="Merzah Test", api_port=8000)


@pytest.fixture
def client(db_engine: Engine, test_config: MerzahConfig):
    """FastAPI TestClient wired to the in-memory engine.

    Overrides are keyed on the dependency objects the routers captured at
    import time, so a reload of ``merzah.api.deps`` does not break them.
    """
    from fastapi.testclient import TestClient

    from merzah.api.main import app
    from merzah.api.routes import events as events_routes

    app.dependency_overrides[events_routes.get_engine] = lambda: db_engine
    app.dependency_overrides[events_routes.get_config] = lambda: test_config
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()
