"""
Shared pytest fixtures.

``FakeSubscriptionRepository`` is an in-memory stand-in for
``SubscriptionRepository`` that evaluates ``CustomerCriteria`` with the same
semantics as the SQL WHERE clause (NULL churn dates never match a bound).

``api_client`` mounts every router on a bare FastAPI app backed by an
in-memory SQLite database, so CRUD endpoints and the real repository run
end to end without PostgreSQL.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401  registers every table on Base.metadata
from app.api.dependencies import (
    get_metrics_engine,
    get_subscription_repository,
    get_today,
)
from app.api.routers import (
    account_router,
    customer_router,
    metrics_router,
    payment_router,
    plan_router,
)
from app.services.metrics_cache import MetricsCache
from app.services.metrics_engine import MetricsEngine
from db.base import Base
from db.repositories.errors import UnscopedQueryError
from db.repositories.subscription_repository import SubscriptionRepository
from db.repositories.types import CustomerCriteria, CustomerSnapshot
from db.session import get_db

ACCOUNT_ID = uuid.UUID("00000000-0000-0000-0000-0000000000a1")
OTHER_ACCOUNT_ID = uuid.UUID("00000000-0000-0000-0000-0000000000b2")
REFERENCE_DATE = date(2026, 3, 15)


def make_customer(
    *,
    account_id: uuid.UUID = ACCOUNT_ID,
    status: str = "active",
    subscribed: date = date(2025, 12, 1),
    churned: date | None = None,
    price: float = 100.0,
    cycle: str = "monthly",
    acquisition_cost: float | None = 0.0,
) -> CustomerSnapshot:
    return CustomerSnapshot(
        id=uuid.uuid4(),
        account_id=account_id,
        status=status,
        subscription_date=subscribed,
        churn_date=churned,
        monthly_revenue=price,
        acquisition_cost=acquisition_cost,
        plan_price=price,
        plan_billing_cycle=cycle,
    )


def _matches(customer: CustomerSnapshot, criteria: CustomerCriteria) -> bool:
    if criteria.status is not None and customer.status != criteria.status:
        return False
    sub = customer.subscription_date
    if criteria.subscribed_on_or_after is not None and not sub >= criteria.subscribed_on_or_after:
        return False
    if criteria.subscribed_before is not None and not sub < criteria.subscribed_before:
        return False
    if criteria.subscribed_on_or_before is not None and not sub <= criteria.subscribed_on_or_before:
        return False
    churn = customer.churn_date
    if criteria.churned_on_or_after is not None and (
        churn is None or not churn >= criteria.churned_on_or_after
    ):
        return False
    if criteria.churned_on_or_before is not None and (
        churn is None or not churn <= criteria.churned_on_or_before
    ):
        return False
    return True


@dataclass
class FakeSubscriptionRepository:
    customers: list[CustomerSnapshot] = field(default_factory=list)
    payments: list[tuple[uuid.UUID, date, float]] = field(default_factory=list)
    error: Exception | None = None
    calls: list[tuple[str, uuid.UUID]] = field(default_factory=list)

    def _record(self, method: str, account_id: uuid.UUID) -> None:
        if account_id is None:
            raise UnscopedQueryError("account_id is required")
        self.calls.append((method, account_id))
        if self.error is not None:
            raise self.error

    def find_customers(
        self,
        account_id: uuid.UUID,
        criteria: CustomerCriteria,
    ) -> list[CustomerSnapshot]:
        self._record("find_customers", account_id)
        return [
            c for c in self.customers if c.account_id == account_id and _matches(c, criteria)
        ]

    def count_customers(self, account_id: uuid.UUID, criteria: CustomerCriteria) -> int:
        self._record("count_customers", account_id)
        return sum(
            1 for c in self.customers if c.account_id == account_id and _matches(c, criteria)
        )

    def net_payment_revenue(
        self,
        account_id: uuid.UUID,
        start: date | None = None,
        end: date | None = None,
    ) -> float:
        self._record("net_payment_revenue", account_id)
        return sum(
            amount
            for owner, paid_on, amount in self.payments
            if owner == account_id
            and (start is None or paid_on >= start)
            and (end is None or paid_on <= end)
        )


@pytest.fixture()
def repository() -> FakeSubscriptionRepository:
    return FakeSubscriptionRepository()


@pytest.fixture()
def cache() -> MetricsCache:
    """Fresh cache per test so no result leaks between tests."""
    return MetricsCache(ttl_seconds=300)


@pytest.fixture()
def engine(repository: FakeSubscriptionRepository, cache: MetricsCache) -> MetricsEngine:
    return MetricsEngine(repository, cache)


# ---------------------------------------------------------------------------
# SQLite-backed API
# ---------------------------------------------------------------------------


@pytest.fixture()
def session_factory() -> Iterator[sessionmaker[Session]]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture()
def api_client(session_factory: sessionmaker[Session]) -> TestClient:
    """
    Every router wired to the SQLite session factory. ``get_today`` is
    pinned to REFERENCE_DATE and the metrics cache is private to the test.
    """

    def _get_db() -> Iterator[Session]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    sql_repository = SubscriptionRepository(session_factory=session_factory)
    metrics_engine = MetricsEngine(sql_repository, MetricsCache())

    application = FastAPI()
    for router in (account_router, plan_router, customer_router, payment_router, metrics_router):
        application.include_router(router)
    application.dependency_overrides[get_db] = _get_db
    application.dependency_overrides[get_today] = lambda: REFERENCE_DATE
    application.dependency_overrides[get_subscription_repository] = lambda: sql_repository
    application.dependency_overrides[get_metrics_engine] = lambda: metrics_engine
    return TestClient(application)


@pytest.fixture()
def account_id(api_client: TestClient) -> str:
    resp = api_client.post("/accounts", json={"name": "Acme Analytics"})
    assert resp.status_code == 201
    return resp.json()["id"]
