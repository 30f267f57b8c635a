"""
app/api/dependencies.py

Shared FastAPI dependencies.
"""

from __future__ import annotations

import uuid
from datetime import date
from functools import lru_cache
from typing import TypeVar

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_metrics_settings
from app.services.metrics_cache import MetricsCache
from app.services.metrics_engine import MetricsEngine
from db.models.account import Account
from db.repositories.subscription_repository import SubscriptionRepository

ModelT = TypeVar("ModelT")


@lru_cache(maxsize=1)
def get_metrics_cache() -> MetricsCache:
    """
    Process-wide metrics cache shared by every request.
    """

    return MetricsCache(ttl_seconds=get_metrics_settings().cache_ttl_seconds)


@lru_cache(maxsize=1)
def get_subscription_repository() -> SubscriptionRepository:
    """
    Process-wide repository bound to the default session factory.
    """

    return SubscriptionRepository()


@lru_cache(maxsize=1)
def get_metrics_engine() -> MetricsEngine:
    """
    Process-wide metrics engine bound to the shared cache and repository.
    Override in tests via ``app.dependency_overrides``.
    """

    return MetricsEngine(
        get_subscription_repository(),
        get_metrics_cache(),
        max_workers=get_metrics_settings().max_workers,
    )


def get_today() -> date:
    """
    Reference date used when a request omits ``date``.
    """

    return date.today()


# ---------------------------------------------------------------------------
# Account-scoped lookups shared by the CRUD routers
# ---------------------------------------------------------------------------


def require_account(db: Session, account_id: uuid.UUID) -> Account:
    """Return the account or raise HTTP 404."""
    account = db.get(Account, account_id)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Account {account_id} not found.",
        )
    return account


def get_owned_or_404(
    db: Session,
    model: type[ModelT],
    account_id: uuid.UUID,
    record_id: uuid.UUID,
    label: str,
) -> ModelT:
    """
    Load ``model`` by primary key, treating a record owned by another
    account exactly like a missing one.
    """
    record = db.get(model, record_id)
    if record is None or record.account_id != account_id:  # type: ignore[attr-defined]
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{label} not found.",
        )
    return record


def commit_or_409(db: Session, record: object, detail: str) -> None:
    """
    Commit the pending unit of work and reload *record*. A constraint
    violation rolls back and becomes HTTP 409 with *detail*.
    """
    try:
        db.commit()
        db.refresh(record)
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail) from exc
