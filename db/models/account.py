"""
db/models/account.py

Account model: the tenant root. Plans, customers and payments are all
owned by exactly one account.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, String, true
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.customer import Customer
    from db.models.payment import Payment
    from db.models.plan import Plan


class Account(Base, TimestampMixin):
    """
    One SaaS business using the dashboard.
    """

    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
        comment="Soft-disable an account without deletion",
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    plans: Mapped[list["Plan"]] = relationship(
        "Plan",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    customers: Mapped[list["Customer"]] = relationship(
        "Customer",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    payments: Mapped[list["Payment"]] = relationship(
        "Payment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Account id={self.id} name={self.name!r}>"
