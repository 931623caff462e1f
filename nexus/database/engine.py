"""
nexus.database.engine — Database Connection & Session Helper
=============================================================

The voice core is plain synchronous SQLAlchemy.  FastAPI runs the ``def``
route handlers on its thread pool, so a blocking query never stalls the
event loop and no async engine is needed.

Usage::

    from nexus.database.engine import create_db_engine, get_session, init_db

    engine = create_db_engine()          # reads DATABASE_URL from .env
    init_db(engine)                      # CREATE TABLE IF NOT EXISTS …

    with get_session(engine) as session:
        session.add(...)
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from nexus.database.models import Base

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(url: str | None = None) -> Engine:
    """Build a SQLAlchemy :class:`Engine` for the voice tables.

    *url* defaults to the ``DATABASE_URL`` env var.  PostgreSQL is the
    production target; its pool is sized for one API worker, which holds
    at most one connection per in-flight join:

    * ``pool_size=5`` / ``max_overflow=10``
    * ``pool_timeout=10``: a join waits at most 10 s for a connection.
    * ``pool_recycle=3600``

    A ``sqlite://`` URL is accepted for local runs.  It gets a single shared
    connection instead of a pool, and row locks are ignored, so capacity is
    only guarded by the post-insert recount there.

    Raises
    ------
    RuntimeError
        If neither *url* nor ``DATABASE_URL`` is set.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid PostgreSQL URL."
        )

    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        logger.warning("Using SQLite (%s); joins are not serialized by row locks.", url)
        return engine

    engine = create_engine(
        url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_timeout=10,
        pool_recycle=3600,
    )
    logger.info("Database engine created → %s/%s", engine.url.host, engine.url.database)
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create all tables defined in :mod:`nexus.database.models`.

    .. note::

        In production the schema is managed by Alembic (``alembic upgrade
        head``).  ``create_all`` is retained for dev/test environments.
    """
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine):
    """Yield a :class:`Session` that commits on success and rolls back
    on exception.

    Objects stay loaded after commit (``expire_on_commit=False``) so callers
    can read them once the block exits.
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
