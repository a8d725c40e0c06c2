"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of vibes.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine, event  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite doesn't support JSONB natively, so we register a custom type
# compiler that renders JSONB as TEXT.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from vibes.config import VibesConfig  # noqa: E402
from vibes.database.models import Base, Profile, User  # noqa: E402

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent)."""
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


def _memory_engine(*, foreign_keys: bool = False) -> Engine:
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    if foreign_keys:
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Vibes tables.

    Uses StaticPool so the API's worker threads and the test body share
    the same in-memory database.  Foreign keys are not enforced, so tests
    can plant dangling rows.
    """
    return _memory_engine()


@pytest.fixture
def fk_engine() -> Engine:
    """Like ``db_engine`` but with ``PRAGMA foreign_keys=ON``, as PostgreSQL behaves."""
    return _memory_engine(foreign_keys=True)


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------
def make_user(
    engine: Engine,
    user_id: str,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    email: str | None = None,
    username: str | None = None,
    with_profile: bool = True,
) -> str:
    """Insert a user (and by default a profile) directly; return the id."""
    with Session(engine) as session:
        session.add(User(
            id=user_id,
            email=email if email is not None else f"{user_id}@example.com",
            first_name=first_name,
            last_name=last_name,
        ))
        if with_profile:
            session.add(Profile(user_id=user_id, username=username or user_id, skills=[], tools=[]))
        session.commit()
    return user_id


def make_token(sub: str) -> str:
    """Create a bearer JWT for *sub*.  Usable from any test module."""
    import jwt

    from vibes.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode({"sub": sub}, JWT_SECRET, algorithm=JWT_ALGORITHM)


def auth(sub: str) -> dict:
    return {"Authorization": f"Bearer {make_token(sub)}"}


@pytest.fixture
def test_config() -> VibesConfig:
    return VibesConfig(
        community_name="Test Vibes",
        api_port=8000,
        feed_page_size=50,
        feed_per_kind_limit=30,
        story_ttl_hours=24,
        news_bot_user_id=None,
    )


@pytest.fixture
def client(db_engine, test_config):
    """FastAPI TestClient wired to the in-memory engine.

    Not used as a context manager, so the lifespan hook (which builds the
    real engine from DATABASE_URL) never runs.
    """
    from fastapi.testclient import TestClient

    from vibes.api.deps import get_config, get_engine
    from vibes.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: test_config
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
