"""
db/models/plan.py

Subscription plan offered by an account.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, CheckConstraint, Index, Numeric, String, true
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import AccountScopedMixin, Base, TimestampMixin
from kpi.saas import BillingCycle, annual_price, monthly_price


class Plan(Base, AccountScopedMixin, TimestampMixin):
    """
    A priced plan with a billing cycle.

    ``price`` is the amount charged once per ``billing_cycle``; the metrics
    engine only ever consumes the normalised monthly price.
    """

    __tablename__ = "plans"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    price: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False),
        nullable=False,
    )
    billing_cycle: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=BillingCycle.MONTHLY,
        comment="monthly, quarterly, yearly",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="price_non_negative"),
        CheckConstraint(
            "billing_cycle IN ('monthly', 'quarterly', 'yearly')",
            name="billing_cycle_valid",
        ),
        Index("ix_plans_account_active", "account_id", "is_active"),
    )

    @property
    def monthly_price(self) -> float:
        return monthly_price(self.price, self.billing_cycle)

    @property
    def annual_price(self) -> float:
        return annual_price(self.price, self.billing_cycle)

    def __repr__(self) -> str:
        return f"<Plan id={self.id} name={self.name!r} cycle={self.billing_cycle}>"
