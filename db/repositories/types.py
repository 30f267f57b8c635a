"""
Typed DTOs exchanged between the subscription repository and the metrics engine.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class CustomerCriteria:
    """
    Filter applied to an account's customers.

    Every bound is optional; ``None`` means "unbounded". Date bounds are
    inclusive except ``subscribed_before``, which is strict.
    """

    status: str | None = None
    subscribed_on_or_after: date | None = None
    subscribed_before: date | None = None
    subscribed_on_or_before: date | None = None
    churned_on_or_after: date | None = None
    churned_on_or_before: date | None = None


@dataclass(frozen=True)
class CustomerSnapshot:
    """
    Detached, read-only view of one customer and the plan it is on.

    Snapshots carry plain values only so they can cross thread boundaries
    after the session that loaded them has closed.
    """

    id: uuid.UUID
    account_id: uuid.UUID
    status: str
    subscription_date: date
    churn_date: date | None
    monthly_revenue: float
    acquisition_cost: float | None
    plan_price: float
    plan_billing_cycle: str
