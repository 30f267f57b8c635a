"""
tests/test_subscription_repository.py

SubscriptionRepository statement construction and account scoping.

A recording session stands in for SQLAlchemy's Session; statements are
compiled against the PostgreSQL dialect and inspected as text.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

import pytest
from sqlalchemy.dialects import postgresql

from db.repositories import (
    CustomerCriteria,
    SubscriptionRepository,
    UnscopedQueryError,
)

ACCOUNT = uuid.UUID("00000000-0000-0000-0000-0000000000a1")


class _Result:
    def __init__(self, scalar: Any) -> None:
        self._scalar = scalar

    def all(self) -> list[Any]:
        return []

    def scalar_one(self) -> Any:
        return self._scalar


class RecordingSession:
    def __init__(self, scalar: Any = 0) -> None:
        self.statements: list[Any] = []
        self._scalar = scalar

    def __enter__(self) -> RecordingSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def execute(self, stmt: Any) -> _Result:
        self.statements.append(stmt)
        return _Result(self._scalar)

    def sql(self) -> str:
        return str(self.statements[-1].compile(dialect=postgresql.dialect()))


@pytest.fixture()
def session() -> RecordingSession:
    return RecordingSession(scalar=7)


@pytest.fixture()
def repo(session: RecordingSession) -> SubscriptionRepository:
    return SubscriptionRepository(session_factory=lambda: session)


class TestScoping:
    @pytest.mark.parametrize("account_id", [None, ""])
    def test_missing_account_rejected_before_querying(self, account_id: Any) -> None:
        opened: list[bool] = []

        def _factory() -> RecordingSession:
            opened.append(True)
            return RecordingSession()

        repository = SubscriptionRepository(session_factory=_factory)

        with pytest.raises(UnscopedQueryError):
            repository.find_customers(account_id, CustomerCriteria())
        with pytest.raises(UnscopedQueryError):
            repository.count_customers(account_id, CustomerCriteria())
        with pytest.raises(UnscopedQueryError):
            repository.net_payment_revenue(account_id, date(2026, 3, 1), date(2026, 3, 31))
        assert opened == []

    def test_unscoped_error_is_a_value_error(self) -> None:
        assert issubclass(UnscopedQueryError, ValueError)

    def test_find_customers_filters_on_account(
        self, repo: SubscriptionRepository, session: RecordingSession
    ) -> None:
        assert repo.find_customers(ACCOUNT, CustomerCriteria()) == []
        assert "customers.account_id = " in session.sql()
        assert "JOIN plans" in session.sql()

    def test_payment_revenue_filters_on_account_and_status(
        self, repo: SubscriptionRepository, session: RecordingSession
    ) -> None:
        total = repo.net_payment_revenue(ACCOUNT, date(2026, 3, 1), date(2026, 3, 31))
        sql = session.sql()
        assert total == 7.0
        assert "payments.account_id = " in sql
        assert "payments.status = " in sql
        assert "payments.amount - payments.refund_amount" in sql

    def test_payment_revenue_without_bounds_has_no_date_filter(
        self, repo: SubscriptionRepository, session: RecordingSession
    ) -> None:
        repo.net_payment_revenue(ACCOUNT)
        assert "payment_date" not in session.sql()

    def test_payment_revenue_with_one_bound(
        self, repo: SubscriptionRepository, session: RecordingSession
    ) -> None:
        repo.net_payment_revenue(ACCOUNT, start=date(2026, 3, 1))
        sql = session.sql()
        assert "payments.payment_date >= " in sql
        assert "payments.payment_date <= " not in sql


class TestCriteria:
    def test_count_applies_every_bound(
        self, repo: SubscriptionRepository, session: RecordingSession
    ) -> None:
        count = repo.count_customers(
            ACCOUNT,
            CustomerCriteria(
                status="churned",
                subscribed_before=date(2026, 3, 1),
                churned_on_or_after=date(2026, 3, 1),
                churned_on_or_before=date(2026, 3, 31),
            ),
        )
        sql = session.sql()

        assert count == 7
        assert "customers.status = " in sql
        assert "customers.subscription_date < " in sql
        assert "customers.churn_date >= " in sql
        assert "customers.churn_date <= " in sql

    def test_empty_criteria_adds_no_filters(
        self, repo: SubscriptionRepository, session: RecordingSession
    ) -> None:
        repo.count_customers(ACCOUNT, CustomerCriteria())
        sql = session.sql()
        assert "customers.status" not in sql
        assert "subscription_date" not in sql
