from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from pydantic import BaseModel

from app.config import get_logging_settings, get_metrics_settings


class HealthResponse(BaseModel):
    status: str
    cache_entries: int
    cache_ttl_seconds: float


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Runs before any database connection is opened. Raises RuntimeError
    listing every problem so the operator can fix them in one restart.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    database_url = os.getenv("DATABASE_URL", "").strip()
    cloud_database_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
    local_database_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
    if not (database_url or cloud_database_url or local_database_url):
        errors.append(
            "No database URL configured. Set DATABASE_URL, CLOUD_DATABASE_URL "
            "or LOCAL_DATABASE_URL."
        )

    raw_ttl = os.getenv("METRICS_CACHE_TTL_SECONDS")
    if raw_ttl is not None:
        try:
            if float(raw_ttl) <= 0:
                errors.append("METRICS_CACHE_TTL_SECONDS must be positive.")
        except ValueError:
            errors.append(f"METRICS_CACHE_TTL_SECONDS={raw_ttl!r} is not a number.")

    if errors:
        raise RuntimeError(
            "Startup validation failed: missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    settings = get_logging_settings()
    logging.basicConfig(
        level=getattr(logging, settings.level, logging.INFO),
        format=settings.format,
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
    Every table registered on Base.metadata must exist in the database.

    Missing tables abort startup; run 'alembic upgrade head' first.
    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        logging.getLogger(__name__).critical(
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
    """Validate DB connectivity and schema on boot; drop cached metrics on exit."""
    log = logging.getLogger(__name__)
    _check_db()
    log.info("Database connectivity confirmed")
    _check_schema()
    log.info("Database schema validated")

    settings = get_metrics_settings()
    log.info(
        "Metrics engine ready cache_ttl=%.0fs max_workers=%d",
        settings.cache_ttl_seconds,
        settings.max_workers,
    )
    try:
        yield
    finally:
        from app.api.dependencies import get_metrics_cache

        get_metrics_cache().clear()
        log.info("Metrics engine shut down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="SaaS Metrics API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.dependencies import get_metrics_cache
    from app.api.routers import (
        account_router,
        customer_router,
        metrics_router,
        payment_router,
        plan_router,
    )

    application.include_router(account_router)
    application.include_router(plan_router)
    application.include_router(customer_router)
    application.include_router(payment_router)
    application.include_router(metrics_router)

    @application.get("/health", response_model=HealthResponse)
    def healthcheck() -> HealthResponse:
        stats = get_metrics_cache().stats()
        return HealthResponse(
            status="ok",
            cache_entries=int(stats["size"]),
            cache_ttl_seconds=float(stats["ttl_seconds"]),
        )

    return application


app = create_app()
