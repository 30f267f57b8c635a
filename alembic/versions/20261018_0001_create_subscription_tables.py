"""create accounts, plans, customers and payments tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _account_fk(table: str) -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(
        ["account_id"],
        ["accounts.id"],
        name=f"fk_{table}_account_id_accounts",
        ondelete="CASCADE",
    )


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(),
                  comment="Soft-disable an account without deletion"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_accounts"),
        sa.UniqueConstraint("name", name="uq_accounts_name"),
    )

    op.create_table(
        "plans",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("account_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("billing_cycle", sa.String(length=16), nullable=False,
                  comment="monthly, quarterly, yearly"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_plans"),
        _account_fk("plans"),
        sa.CheckConstraint("price >= 0", name="ck_plans_price_non_negative"),
        sa.CheckConstraint(
            "billing_cycle IN ('monthly', 'quarterly', 'yearly')",
            name="ck_plans_billing_cycle_valid",
        ),
    )
    op.create_index("ix_plans_account_id", "plans", ["account_id"])
    op.create_index("ix_plans_account_active", "plans", ["account_id", "is_active"])

    op.create_table(
        "customers",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("account_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("company", sa.String(length=100), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False,
                  comment="active, trial, churned, suspended"),
        sa.Column("plan_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("subscription_date", sa.Date(), nullable=False),
        sa.Column("churn_date", sa.Date(), nullable=True),
        sa.Column("churn_reason", sa.String(length=500), nullable=True),
        sa.Column("monthly_revenue", sa.Numeric(12, 2), nullable=False),
        sa.Column("acquisition_cost", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_customers"),
        _account_fk("customers"),
        sa.ForeignKeyConstraint(
            ["plan_id"], ["plans.id"], name="fk_customers_plan_id_plans", ondelete="RESTRICT"
        ),
        sa.CheckConstraint(
            "status IN ('active', 'trial', 'churned', 'suspended')",
            name="ck_customers_status_valid",
        ),
        sa.CheckConstraint(
            "(status = 'churned') = (churn_date IS NOT NULL)",
            name="ck_customers_churn_date_matches_status",
        ),
        sa.UniqueConstraint("account_id", "email", name="uq_customers_account_id"),
        sa.CheckConstraint("monthly_revenue >= 0", name="ck_customers_monthly_revenue_non_negative"),
        sa.CheckConstraint("acquisition_cost >= 0", name="ck_customers_acquisition_cost_non_negative"),
    )
    op.create_index("ix_customers_account_id", "customers", ["account_id"])
    op.create_index("ix_customers_account_status", "customers", ["account_id", "status"])
    op.create_index(
        "ix_customers_account_subscription_date", "customers", ["account_id", "subscription_date"]
    )
    op.create_index("ix_customers_account_churn_date", "customers", ["account_id", "churn_date"])

    op.create_table(
        "payments",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("account_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("plan_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("refund_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default=sa.text("'USD'")),
        sa.Column("status", sa.String(length=16), nullable=False,
                  comment="pending, completed, failed, refunded, cancelled"),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_payments"),
        _account_fk("payments"),
        sa.ForeignKeyConstraint(
            ["customer_id"], ["customers.id"], name="fk_payments_customer_id_customers", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["plan_id"], ["plans.id"], name="fk_payments_plan_id_plans", ondelete="RESTRICT"
        ),
        sa.CheckConstraint("amount >= 0", name="ck_payments_amount_non_negative"),
        sa.CheckConstraint("refund_amount >= 0", name="ck_payments_refund_amount_non_negative"),
        sa.CheckConstraint(
            "status IN ('pending', 'completed', 'failed', 'refunded', 'cancelled')",
            name="ck_payments_status_valid",
        ),
    )
    op.create_index("ix_payments_account_id", "payments", ["account_id"])
    op.create_index("ix_payments_account_payment_date", "payments", ["account_id", "payment_date"])
    op.create_index("ix_payments_customer_payment_date", "payments", ["customer_id", "payment_date"])


def downgrade() -> None:
    op.drop_table("payments")
    op.drop_table("customers")
    op.drop_table("plans")
    op.drop_table("accounts")
