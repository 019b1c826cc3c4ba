"""
db/session.py

SQLAlchemy engine and session factory.

Import runs execute on worker threads; each run opens its own session
through `SessionLocal()`.
"""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import get_engine_pool_settings, resolve_database_url


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """
    Return the process-wide PostgreSQL engine, built on first use.
    """

    database_url = resolve_database_url()
    if not database_url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported.")

    pool_settings = get_engine_pool_settings()
    return create_engine(
        database_url,
        echo=pool_settings.echo,
        pool_pre_ping=True,
        pool_recycle=pool_settings.pool_recycle,
        pool_size=pool_settings.pool_size,
        max_overflow=pool_settings.max_overflow,
    )


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker[Session]:
    # Rows are read back after commit by the job store; keep them loaded.
    return sessionmaker(
        bind=get_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


def SessionLocal() -> Session:
    """Open a new session bound to the shared engine."""
    return get_session_factory()()
