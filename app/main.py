from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI

_DATABASE_URL_VARS = ("DATABASE_URL", "CLOUD_DATABASE_URL", "LOCAL_DATABASE_URL")


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Runs before any service or database connection is initialised.
    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - At least one database URL must be set, and none may be empty.
    - SQLite URLs are not permitted (imports rely on PostgreSQL upserts).
    - SCORE_IMPORT_DUPLICATE_MODE, when set, must be skip or overwrite.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    # --- Database URL ---------------------------------------------------
    configured = {
        name: os.getenv(name, "").strip()
        for name in _DATABASE_URL_VARS
        if os.getenv(name, "").strip()
    }
    if not configured:
        errors.append(
            "No database URL configured. Set DATABASE_URL, CLOUD_DATABASE_URL "
            "or LOCAL_DATABASE_URL."
        )
    for name, value in configured.items():
        if value.lower().startswith("sqlite"):
            errors.append(f"{name} points at SQLite, which is not supported.")

    # --- Import defaults ------------------------------------------------
    duplicate_mode = os.getenv("SCORE_IMPORT_DUPLICATE_MODE")
    if duplicate_mode is not None and duplicate_mode.strip().lower() not in {"skip", "overwrite"}:
        errors.append(
            f"SCORE_IMPORT_DUPLICATE_MODE='{duplicate_mode}' is not valid. "
            "Allowed values: ['skip', 'overwrite']."
        )

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Compare Base.metadata table names against the live DB schema.

    Every table registered on Base.metadata must exist in the database,
    otherwise startup aborts so migrations get run first. Does NOT
    auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401 (registers all ORM models on Base.metadata)
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        log = logging.getLogger(__name__)
        log.critical(
            "Schema mismatch: %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema before serving traffic."""
    _check_db()
    logging.getLogger(__name__).info("Database connectivity confirmed")
    _check_schema()
    logging.getLogger(__name__).info("Database schema validated")
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Benchmark Score Import API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import score_import_router

    application.include_router(score_import_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
