"""
db/models/customer.py

Subscribed customer of an account.
"""

from __future__ import annotations

import math
import uuid
from datetime import date

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import AccountScopedMixin, Base, TimestampMixin
from db.models.plan import Plan


class CustomerStatus:
    ACTIVE = "active"
    TRIAL = "trial"
    CHURNED = "churned"
    SUSPENDED = "suspended"


_DAYS_PER_BILLING_MONTH = 30


class Customer(Base, AccountScopedMixin, TimestampMixin):
    """
    A customer subscribed to one of the account's plans.

    ``churn_date`` is populated exactly when ``status`` is ``churned``;
    the table enforces this with a CHECK constraint.
    """

    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=CustomerStatus.TRIAL,
        comment="active, trial, churned, suspended",
    )
    plan_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("plans.id", ondelete="RESTRICT"),
        nullable=False,
    )
    subscription_date: Mapped[date] = mapped_column(Date, nullable=False)
    churn_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    churn_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    monthly_revenue: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False),
        nullable=False,
    )
    acquisition_cost: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False),
        nullable=False,
        default=0.0,
        server_default=text("0"),
    )

    plan: Mapped[Plan] = relationship(Plan, lazy="joined")

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'trial', 'churned', 'suspended')",
            name="status_valid",
        ),
        CheckConstraint(
            "(status = 'churned') = (churn_date IS NOT NULL)",
            name="churn_date_matches_status",
        ),
        UniqueConstraint("account_id", "email"),
        CheckConstraint("monthly_revenue >= 0", name="monthly_revenue_non_negative"),
        CheckConstraint("acquisition_cost >= 0", name="acquisition_cost_non_negative"),
        Index("ix_customers_account_status", "account_id", "status"),
        Index("ix_customers_account_subscription_date", "account_id", "subscription_date"),
        Index("ix_customers_account_churn_date", "account_id", "churn_date"),
    )

    def age_in_months(self, as_of: date) -> int:
        """
        Whole 30-day months between subscription and churn (or *as_of*),
        rounded up.
        """
        end = self.churn_date or as_of
        days = abs((end - self.subscription_date).days)
        return math.ceil(days / _DAYS_PER_BILLING_MONTH)

    def lifetime_value(self, churn_rate: float) -> float:
        """Monthly revenue over a churn fraction; 0 when churn_rate is 0."""
        if churn_rate == 0:
            return 0.0
        return self.monthly_revenue / churn_rate

    def __repr__(self) -> str:
        return f"<Customer id={self.id} status={self.status}>"
