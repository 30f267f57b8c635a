"""
db/repositories/subscription_repository.py

Read-only access to an account's customers, plans and payments.

Every public method takes the owning ``account_id`` as its first argument
and adds it to the WHERE clause; there is no way to issue an unscoped query.

Each call opens its own short-lived session from the session factory, so a
single repository instance may be shared by concurrently running metric
calculations.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import date
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from db.models.customer import Customer
from db.models.payment import Payment, PaymentStatus
from db.models.plan import Plan
from db.repositories.errors import UnscopedQueryError
from db.repositories.types import CustomerCriteria, CustomerSnapshot

logger = logging.getLogger(__name__)


def _require_account(account_id: uuid.UUID | None) -> uuid.UUID:
    if account_id is None or account_id == "":
        raise UnscopedQueryError("account_id is required for every subscription query.")
    return account_id


def _apply_criteria(stmt: Select[Any], criteria: CustomerCriteria) -> Select[Any]:
    if criteria.status is not None:
        stmt = stmt.where(Customer.status == criteria.status)
    if criteria.subscribed_on_or_after is not None:
        stmt = stmt.where(Customer.subscription_date >= criteria.subscribed_on_or_after)
    if criteria.subscribed_before is not None:
        stmt = stmt.where(Customer.subscription_date < criteria.subscribed_before)
    if criteria.subscribed_on_or_before is not None:
        stmt = stmt.where(Customer.subscription_date <= criteria.subscribed_on_or_before)
    if criteria.churned_on_or_after is not None:
        stmt = stmt.where(Customer.churn_date >= criteria.churned_on_or_after)
    if criteria.churned_on_or_before is not None:
        stmt = stmt.where(Customer.churn_date <= criteria.churned_on_or_before)
    return stmt


class SubscriptionRepository:
    """
    Account-scoped queries consumed by the metrics engine.

    Parameters
    ----------
    session_factory:
        Zero-argument callable returning a new ``Session``. Defaults to
        :func:`db.session.SessionLocal`.
    """

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            self._session_factory = SessionLocal
        else:
            self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    def find_customers(
        self,
        account_id: uuid.UUID,
        criteria: CustomerCriteria,
    ) -> list[CustomerSnapshot]:
        """
        Return every customer of *account_id* matching *criteria*, joined to
        its plan's price and billing cycle.
        """
        account_id = _require_account(account_id)
        stmt = (
            select(
                Customer.id,
                Customer.account_id,
                Customer.status,
                Customer.subscription_date,
                Customer.churn_date,
                Customer.monthly_revenue,
                Customer.acquisition_cost,
                Plan.price,
                Plan.billing_cycle,
            )
            .join(Plan, Plan.id == Customer.plan_id)
            .where(Customer.account_id == account_id)
        )
        stmt = _apply_criteria(stmt, criteria)

        with self._session_factory() as session:
            rows = session.execute(stmt).all()

        logger.debug(
            "find_customers account_id=%s criteria=%s rows=%d",
            account_id,
            criteria,
            len(rows),
        )
        return [
            CustomerSnapshot(
                id=row.id,
                account_id=row.account_id,
                status=row.status,
                subscription_date=row.subscription_date,
                churn_date=row.churn_date,
                monthly_revenue=float(row.monthly_revenue),
                acquisition_cost=None if row.acquisition_cost is None else float(row.acquisition_cost),
                plan_price=float(row.price),
                plan_billing_cycle=row.billing_cycle,
            )
            for row in rows
        ]

    def count_customers(
        self,
        account_id: uuid.UUID,
        criteria: CustomerCriteria,
    ) -> int:
        """Count customers of *account_id* matching *criteria*."""
        account_id = _require_account(account_id)
        stmt = select(func.count(Customer.id)).where(Customer.account_id == account_id)
        stmt = _apply_criteria(stmt, criteria)

        with self._session_factory() as session:
            count = session.execute(stmt).scalar_one()

        logger.debug(
            "count_customers account_id=%s criteria=%s count=%d",
            account_id,
            criteria,
            count,
        )
        return int(count)

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def net_payment_revenue(
        self,
        account_id: uuid.UUID,
        start: date | None = None,
        end: date | None = None,
    ) -> float:
        """
        Sum of ``amount - refund_amount`` over completed payments dated
        within ``[start, end]``. A ``None`` bound is open.
        """
        account_id = _require_account(account_id)
        stmt = select(func.coalesce(func.sum(Payment.net_amount), 0)).where(
            Payment.account_id == account_id,
            Payment.status == PaymentStatus.COMPLETED,
        )
        if start is not None:
            stmt = stmt.where(Payment.payment_date >= start)
        if end is not None:
            stmt = stmt.where(Payment.payment_date <= end)

        with self._session_factory() as session:
            total = session.execute(stmt).scalar_one()

        return float(total)
