"""
app/schemas/plans.py

Request and response schemas for plan endpoints.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.common import Pagination

BillingCycleName = Literal["monthly", "quarterly", "yearly"]


class PlanCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    price: float = Field(..., ge=0)
    billing_cycle: BillingCycleName = "monthly"
    is_active: bool = True


class PlanUpdateRequest(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    price: float | None = Field(default=None, ge=0)
    billing_cycle: BillingCycleName | None = None
    is_active: bool | None = None


class PlanResponse(BaseModel):
    id: uuid.UUID
    account_id: uuid.UUID
    name: str
    description: str | None
    price: float
    billing_cycle: str
    is_active: bool
    monthly_price: float
    annual_price: float
    created_at: datetime

    model_config = {"from_attributes": True}


class PlanListResponse(BaseModel):
    plans: list[PlanResponse]
    pagination: Pagination


class PlanRevenue(BaseModel):
    plan_id: uuid.UUID
    plan_name: str
    customer_count: int
    revenue: float


class PlanSummaryResponse(BaseModel):
    """
    Plan counts plus the monthly revenue of each plan's active customers.
    """

    total: int
    active: int
    revenue_by_plan: list[PlanRevenue] = Field(default_factory=list)
