"""
db/models/payment.py

Payment collected (or expected) from a customer.
"""

from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column

from db.base import AccountScopedMixin, Base, TimestampMixin


class PaymentStatus:
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class Payment(Base, AccountScopedMixin, TimestampMixin):
    """
    A single charge against a customer for one billing period.

    ``net_amount`` (amount minus refunds) is usable both on instances and in
    SQL expressions.
    """

    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
    )
    plan_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("plans.id", ondelete="RESTRICT"),
        nullable=False,
    )
    amount: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False)
    refund_amount: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False),
        nullable=False,
        default=0.0,
        server_default=text("0"),
    )
    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="USD",
        server_default=text("'USD'"),
    )
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=PaymentStatus.PENDING,
        comment="pending, completed, failed, refunded, cancelled",
    )
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="amount_non_negative"),
        CheckConstraint("refund_amount >= 0", name="refund_amount_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'completed', 'failed', 'refunded', 'cancelled')",
            name="status_valid",
        ),
        Index("ix_payments_account_payment_date", "account_id", "payment_date"),
        Index("ix_payments_customer_payment_date", "customer_id", "payment_date"),
    )

    @hybrid_property
    def net_amount(self) -> float:
        return self.amount - self.refund_amount

    def is_overdue(self, as_of: date) -> bool:
        return self.status == PaymentStatus.PENDING and as_of > self.due_date

    def days_overdue(self, as_of: date) -> int:
        if not self.is_overdue(as_of):
            return 0
        return (as_of - self.due_date).days

    def __repr__(self) -> str:
        return f"<Payment id={self.id} amount={self.amount} status={self.status}>"
