"""
app/schemas/payments.py

Request and response schemas for payment endpoints.
"""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.common import Pagination
from db.models.payment import Payment

PaymentStatusName = Literal["pending", "completed", "failed", "refunded", "cancelled"]


class PaymentCreateRequest(BaseModel):
    customer_id: uuid.UUID
    plan_id: uuid.UUID
    amount: float = Field(..., ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    status: PaymentStatusName = "pending"
    payment_date: dt.date | None = None
    due_date: dt.date


class PaymentUpdateRequest(BaseModel):
    status: PaymentStatusName | None = None
    amount: float | None = Field(default=None, ge=0)
    refund_amount: float | None = Field(default=None, ge=0)


class PaymentResponse(BaseModel):
    id: uuid.UUID
    account_id: uuid.UUID
    customer_id: uuid.UUID
    plan_id: uuid.UUID
    amount: float
    refund_amount: float
    net_amount: float
    currency: str
    status: str
    payment_date: dt.date
    due_date: dt.date
    is_overdue: bool
    days_overdue: int
    created_at: dt.datetime

    @classmethod
    def from_model(cls, payment: Payment, as_of: dt.date) -> PaymentResponse:
        return cls(
            id=payment.id,
            account_id=payment.account_id,
            customer_id=payment.customer_id,
            plan_id=payment.plan_id,
            amount=payment.amount,
            refund_amount=payment.refund_amount,
            net_amount=payment.net_amount,
            currency=payment.currency,
            status=payment.status,
            payment_date=payment.payment_date,
            due_date=payment.due_date,
            is_overdue=payment.is_overdue(as_of),
            days_overdue=payment.days_overdue(as_of),
            created_at=payment.created_at,
        )


class PaymentListResponse(BaseModel):
    payments: list[PaymentResponse]
    pagination: Pagination


class PaymentSummaryResponse(BaseModel):
    """
    Status counts plus net collected revenue, all-time and for one month.
    """

    total: int
    completed: int
    pending: int
    failed: int
    total_revenue: float
    monthly_revenue: float
