"""
app/schemas/customers.py

Request and response schemas for customer endpoints.
"""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.common import Pagination
from db.models.customer import Customer

CustomerStatusName = Literal["active", "trial", "churned", "suspended"]

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class CustomerCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=255, pattern=_EMAIL_PATTERN)
    company: str | None = Field(default=None, max_length=100)
    plan_id: uuid.UUID
    monthly_revenue: float = Field(..., ge=0)
    status: CustomerStatusName = "trial"
    acquisition_cost: float = Field(default=0.0, ge=0)
    subscription_date: dt.date | None = None


class CustomerUpdateRequest(BaseModel):
    """
    Partial update. Moving into ``churned`` stamps the churn date; moving out
    of it clears the churn date.
    """

    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: str | None = Field(default=None, max_length=255, pattern=_EMAIL_PATTERN)
    company: str | None = Field(default=None, max_length=100)
    plan_id: uuid.UUID | None = None
    monthly_revenue: float | None = Field(default=None, ge=0)
    status: CustomerStatusName | None = None
    acquisition_cost: float | None = Field(default=None, ge=0)
    churn_reason: str | None = Field(default=None, max_length=500)


class CustomerResponse(BaseModel):
    id: uuid.UUID
    account_id: uuid.UUID
    name: str
    email: str
    company: str | None
    status: str
    plan_id: uuid.UUID
    plan_name: str | None
    subscription_date: dt.date
    churn_date: dt.date | None
    churn_reason: str | None
    monthly_revenue: float
    acquisition_cost: float
    age_in_months: int
    created_at: dt.datetime

    @classmethod
    def from_model(cls, customer: Customer, as_of: dt.date) -> CustomerResponse:
        return cls(
            id=customer.id,
            account_id=customer.account_id,
            name=customer.name,
            email=customer.email,
            company=customer.company,
            status=customer.status,
            plan_id=customer.plan_id,
            plan_name=customer.plan.name if customer.plan is not None else None,
            subscription_date=customer.subscription_date,
            churn_date=customer.churn_date,
            churn_reason=customer.churn_reason,
            monthly_revenue=customer.monthly_revenue,
            acquisition_cost=customer.acquisition_cost,
            age_in_months=customer.age_in_months(as_of),
            created_at=customer.created_at,
        )


class CustomerListResponse(BaseModel):
    customers: list[CustomerResponse]
    pagination: Pagination


class CustomerSummaryResponse(BaseModel):
    """
    Status counts plus the mean per-customer LTV at the current churn rate.
    """

    total: int
    active: int
    churned: int
    trial: int
    average_ltv: float
