"""
vibes.database.engine — Database Connection & Session Helper
=============================================================

Every service function takes an :class:`Engine` as its first argument and
opens its own short-lived session.  One HTTP request maps to a handful of
such sessions; there is no request-wide transaction and no in-process cache,
so every read sees the latest committed state.

Timeouts are explicit: the pool gives up after ``pool_timeout`` seconds,
and on PostgreSQL every statement carries a server-side
``statement_timeout`` (``DB_STATEMENT_TIMEOUT_MS``, default 5000 ms).

Usage::

    from vibes.database.engine import create_db_engine, get_session, init_db

    engine = create_db_engine()          # reads DATABASE_URL from .env
    init_db(engine)                      # CREATE TABLE IF NOT EXISTS …

    with get_session(engine) as session:
        session.add(User(id="u1", email="a@b.c"))
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from vibes.database.models import Base

logger = logging.getLogger(__name__)

DEFAULT_STATEMENT_TIMEOUT_MS = 5000


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def _statement_timeout_ms() -> int:
    raw = os.getenv("DB_STATEMENT_TIMEOUT_MS", "").strip()
    if not raw:
        return DEFAULT_STATEMENT_TIMEOUT_MS
    try:
        return max(int(raw), 0)
    except ValueError:
        logger.warning(
            "Ignoring invalid DB_STATEMENT_TIMEOUT_MS=%r, using %d",
            raw, DEFAULT_STATEMENT_TIMEOUT_MS,
        )
        return DEFAULT_STATEMENT_TIMEOUT_MS


def create_db_engine(url: str | None = None) -> Engine:
    """Build a SQLAlchemy :class:`Engine` from ``DATABASE_URL``.

    The connection pool is sized for a single API process:
    * ``pool_size=5`` — five persistent connections.
    * ``max_overflow=10`` — up to 10 extra connections under load.
    * ``pool_timeout=10`` — fail after 10 s if no connection is available.
    * ``pool_recycle=3600`` — recycle connections after 1 hour.

    Raises
    ------
    RuntimeError
        If no URL is given and ``DATABASE_URL`` is not set.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid PostgreSQL URL."
        )

    connect_args: dict = {}
    if url.startswith("postgresql"):
        timeout_ms = _statement_timeout_ms()
        connect_args["options"] = f"-c statement_timeout={timeout_ms}"

    engine = create_engine(
        url,
        echo=False,        # Set True for SQL debugging
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,   # Reconnect stale connections automatically
        pool_timeout=10,      # Fail after 10s instead of hanging forever
        pool_recycle=3600,    # Recycle connections after 1 hour
        connect_args=connect_args,
    )
    logger.info("Database engine created → %s", engine.url.host)
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine, *, news_bot_user_id: str | None = None) -> None:
    """Create all tables defined in :mod:`vibes.database.models`.

    Safe to call on every startup (``CREATE TABLE IF NOT EXISTS``).  When
    *news_bot_user_id* is given, the news-bot account is provisioned too.

    .. note::

        In production the schema is managed by Alembic (``alembic upgrade
        head``).  ``create_all`` is retained for dev/test environments.
    """
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")

    if news_bot_user_id:
        from vibes.database.seed import ensure_news_bot_user

        ensure_news_bot_user(engine, news_bot_user_id)


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine):
    """Yield a :class:`Session` that auto-commits on success and rolls back
    on exception.

    Usage::

        with get_session(engine) as session:
            session.add(Follow(follower_id="a", following_id="b"))
            # commit happens automatically on block exit
    """
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
