"""
app/api/routers/plan_router.py

Plan management endpoints for one account.

GET    /accounts/{account_id}/plans                  paginated list, optional is_active filter
GET    /accounts/{account_id}/plans/stats/summary    counts and revenue by plan
GET    /accounts/{account_id}/plans/{plan_id}        one plan
POST   /accounts/{account_id}/plans                  create
PUT    /accounts/{account_id}/plans/{plan_id}        partial update
DELETE /accounts/{account_id}/plans/{plan_id}        delete (refused while active customers remain)
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.api.dependencies import commit_or_409, get_owned_or_404, require_account
from app.schemas.common import Pagination
from app.schemas.plans import (
    PlanCreateRequest,
    PlanListResponse,
    PlanResponse,
    PlanRevenue,
    PlanSummaryResponse,
    PlanUpdateRequest,
)
from db.models.customer import Customer, CustomerStatus
from db.models.plan import Plan
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounts/{account_id}/plans", tags=["plans"])


def _ensure_unique_name(
    db: Session,
    account_id: uuid.UUID,
    name: str,
    exclude_id: uuid.UUID | None = None,
) -> None:
    stmt = select(Plan.id).where(Plan.account_id == account_id, Plan.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Plan.id != exclude_id)
    if db.scalar(stmt) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A plan named {name!r} already exists.",
        )


@router.get("/stats/summary", response_model=PlanSummaryResponse)
def get_plan_summary(
    account_id: uuid.UUID,
    db: Session = Depends(get_db),
) -> PlanSummaryResponse:
    total = db.scalar(select(func.count(Plan.id)).where(Plan.account_id == account_id)) or 0
    active = db.scalar(
        select(func.count(Plan.id)).where(Plan.account_id == account_id, Plan.is_active.is_(True))
    ) or 0

    rows = db.execute(
        select(
            Plan.id,
            Plan.name,
            func.count(Customer.id),
            func.coalesce(func.sum(Customer.monthly_revenue), 0),
        )
        .outerjoin(
            Customer,
            and_(Customer.plan_id == Plan.id, Customer.status == CustomerStatus.ACTIVE),
        )
        .where(Plan.account_id == account_id)
        .group_by(Plan.id, Plan.name)
        .order_by(Plan.name)
    ).all()

    return PlanSummaryResponse(
        total=total,
        active=active,
        revenue_by_plan=[
            PlanRevenue(
                plan_id=plan_id,
                plan_name=name,
                customer_count=count,
                revenue=float(revenue),
            )
            for plan_id, name, count, revenue in rows
        ],
    )


@router.get("", response_model=PlanListResponse)
def list_plans(
    account_id: uuid.UUID,
    is_active: bool | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
) -> PlanListResponse:
    stmt = select(Plan).where(Plan.account_id == account_id)
    if is_active is not None:
        stmt = stmt.where(Plan.is_active.is_(is_active))

    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    plans = db.scalars(
        stmt.order_by(Plan.created_at.desc(), Plan.id).offset((page - 1) * limit).limit(limit)
    ).all()
    return PlanListResponse(
        plans=[PlanResponse.model_validate(plan) for plan in plans],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{plan_id}", response_model=PlanResponse)
def get_plan(
    account_id: uuid.UUID,
    plan_id: uuid.UUID,
    db: Session = Depends(get_db),
) -> PlanResponse:
    plan = get_owned_or_404(db, Plan, account_id, plan_id, "Plan")
    return PlanResponse.model_validate(plan)


@router.post("", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
def create_plan(
    account_id: uuid.UUID,
    body: PlanCreateRequest,
    db: Session = Depends(get_db),
) -> PlanResponse:
    """
    Create a plan. Raises HTTP 409 if the account already has a plan with
    the same name.
    """
    require_account(db, account_id)
    name = body.name.strip()
    _ensure_unique_name(db, account_id, name)

    plan = Plan(
        account_id=account_id,
        name=name,
        description=body.description,
        price=body.price,
        billing_cycle=body.billing_cycle,
        is_active=body.is_active,
    )
    db.add(plan)
    commit_or_409(db, plan, f"A plan named {name!r} already exists.")
    logger.info("Plan created account_id=%s plan_id=%s", account_id, plan.id)
    return PlanResponse.model_validate(plan)


@router.put("/{plan_id}", response_model=PlanResponse)
def update_plan(
    account_id: uuid.UUID,
    plan_id: uuid.UUID,
    body: PlanUpdateRequest,
    db: Session = Depends(get_db),
) -> PlanResponse:
    plan = get_owned_or_404(db, Plan, account_id, plan_id, "Plan")
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in changes:
        changes["name"] = changes["name"].strip()
        _ensure_unique_name(db, account_id, changes["name"], exclude_id=plan.id)

    for field, value in changes.items():
        setattr(plan, field, value)
    commit_or_409(db, plan, "Plan update conflicts with an existing plan.")
    return PlanResponse.model_validate(plan)


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_plan(
    account_id: uuid.UUID,
    plan_id: uuid.UUID,
    db: Session = Depends(get_db),
) -> Response:
    """
    Delete a plan. Raises HTTP 400 while active customers are on it and
    HTTP 409 while any other record still references it.
    """
    plan = get_owned_or_404(db, Plan, account_id, plan_id, "Plan")
    active_customers = db.scalar(
        select(func.count(Customer.id)).where(
            Customer.account_id == account_id,
            Customer.plan_id == plan.id,
            Customer.status == CustomerStatus.ACTIVE,
        )
    )
    if active_customers:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete a plan with active customers.",
        )

    db.delete(plan)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Plan is still referenced by customers or payments.",
        ) from exc
    logger.info("Plan deleted account_id=%s plan_id=%s", account_id, plan_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
