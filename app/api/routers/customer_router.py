"""
app/api/routers/customer_router.py

Customer management endpoints for one account.

GET    /accounts/{account_id}/customers                    paginated list, status filter, search
GET    /accounts/{account_id}/customers/stats/summary      status counts and average LTV
GET    /accounts/{account_id}/customers/{customer_id}      one customer
POST   /accounts/{account_id}/customers                    create
PUT    /accounts/{account_id}/customers/{customer_id}      partial update
DELETE /accounts/{account_id}/customers/{customer_id}      delete

A customer's plan must belong to the same account. Email addresses are
unique within an account.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from app.api.dependencies import (
    commit_or_409,
    get_metrics_engine,
    get_owned_or_404,
    get_today,
    require_account,
)
from app.schemas.common import Pagination
from app.schemas.customers import (
    CustomerCreateRequest,
    CustomerListResponse,
    CustomerResponse,
    CustomerStatusName,
    CustomerSummaryResponse,
    CustomerUpdateRequest,
)
from app.services.metrics_engine import MetricsEngine
from db.models.customer import Customer, CustomerStatus
from db.models.plan import Plan
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounts/{account_id}/customers", tags=["customers"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _require_plan(db: Session, account_id: uuid.UUID, plan_id: uuid.UUID) -> Plan:
    plan = db.get(Plan, plan_id)
    if plan is None or plan.account_id != account_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Plan not found or does not belong to this account.",
        )
    return plan


def _ensure_unique_email(
    db: Session,
    account_id: uuid.UUID,
    email: str,
    exclude_id: uuid.UUID | None = None,
) -> None:
    stmt = select(Customer.id).where(Customer.account_id == account_id, Customer.email == email)
    if exclude_id is not None:
        stmt = stmt.where(Customer.id != exclude_id)
    if db.scalar(stmt) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A customer with email {email!r} already exists.",
        )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/stats/summary", response_model=CustomerSummaryResponse)
def get_customer_summary(
    account_id: uuid.UUID,
    db: Session = Depends(get_db),
    engine: MetricsEngine = Depends(get_metrics_engine),
    today: date = Depends(get_today),
) -> CustomerSummaryResponse:
    """
    ``average_ltv`` averages each customer's monthly revenue over this
    month's churn fraction; it is 0 while the month has no churn.
    """
    counts: dict[str, int] = dict(
        db.execute(
            select(Customer.status, func.count(Customer.id))
            .where(Customer.account_id == account_id)
            .group_by(Customer.status)
        ).all()
    )
    customers = db.scalars(select(Customer).where(Customer.account_id == account_id)).all()

    churn_fraction = engine.calculate_churn_rate(account_id, today).current / 100
    values = [customer.lifetime_value(churn_fraction) for customer in customers]

    return CustomerSummaryResponse(
        total=sum(counts.values()),
        active=counts.get(CustomerStatus.ACTIVE, 0),
        churned=counts.get(CustomerStatus.CHURNED, 0),
        trial=counts.get(CustomerStatus.TRIAL, 0),
        average_ltv=sum(values) / len(values) if values else 0.0,
    )


@router.get("", response_model=CustomerListResponse)
def list_customers(
    account_id: uuid.UUID,
    status_filter: CustomerStatusName | None = Query(default=None, alias="status"),
    search: str | None = Query(default=None, max_length=100),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
) -> CustomerListResponse:
    stmt = select(Customer).where(Customer.account_id == account_id)
    if status_filter is not None:
        stmt = stmt.where(Customer.status == status_filter)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                Customer.name.ilike(pattern),
                Customer.email.ilike(pattern),
                Customer.company.ilike(pattern),
            )
        )

    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    customers = db.scalars(
        stmt.order_by(Customer.created_at.desc(), Customer.id)
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return CustomerListResponse(
        customers=[CustomerResponse.from_model(c, today) for c in customers],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{customer_id}", response_model=CustomerResponse)
def get_customer(
    account_id: uuid.UUID,
    customer_id: uuid.UUID,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
) -> CustomerResponse:
    customer = get_owned_or_404(db, Customer, account_id, customer_id, "Customer")
    return CustomerResponse.from_model(customer, today)


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
def create_customer(
    account_id: uuid.UUID,
    body: CustomerCreateRequest,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
) -> CustomerResponse:
    """
    Create a customer. ``subscription_date`` defaults to today; a customer
    created as ``churned`` gets today's churn date.
    """
    require_account(db, account_id)
    _require_plan(db, account_id, body.plan_id)
    email = body.email.strip().lower()
    _ensure_unique_email(db, account_id, email)

    customer = Customer(
        account_id=account_id,
        name=body.name.strip(),
        email=email,
        company=body.company,
        plan_id=body.plan_id,
        monthly_revenue=body.monthly_revenue,
        status=body.status,
        acquisition_cost=body.acquisition_cost,
        subscription_date=body.subscription_date or today,
        churn_date=today if body.status == CustomerStatus.CHURNED else None,
    )
    db.add(customer)
    commit_or_409(db, customer, f"A customer with email {email!r} already exists.")
    logger.info("Customer created account_id=%s customer_id=%s", account_id, customer.id)
    return CustomerResponse.from_model(customer, today)


@router.put("/{customer_id}", response_model=CustomerResponse)
def update_customer(
    account_id: uuid.UUID,
    customer_id: uuid.UUID,
    body: CustomerUpdateRequest,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
) -> CustomerResponse:
    customer = get_owned_or_404(db, Customer, account_id, customer_id, "Customer")
    changes = body.model_dump(exclude_unset=True, exclude_none=True)

    if "plan_id" in changes:
        _require_plan(db, account_id, changes["plan_id"])
    if "email" in changes:
        changes["email"] = changes["email"].strip().lower()
        if changes["email"] != customer.email:
            _ensure_unique_email(db, account_id, changes["email"], exclude_id=customer.id)

    new_status = changes.get("status")
    if new_status is not None and new_status != customer.status:
        # churn_date is set exactly when status is churned
        customer.churn_date = today if new_status == CustomerStatus.CHURNED else None
        logger.info(
            "Customer status changed account_id=%s customer_id=%s %s -> %s",
            account_id,
            customer.id,
            customer.status,
            new_status,
        )

    for field, value in changes.items():
        setattr(customer, field, value)
    commit_or_409(db, customer, "Customer update conflicts with an existing customer.")
    return CustomerResponse.from_model(customer, today)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(
    account_id: uuid.UUID,
    customer_id: uuid.UUID,
    db: Session = Depends(get_db),
) -> Response:
    customer = get_owned_or_404(db, Customer, account_id, customer_id, "Customer")
    db.delete(customer)
    db.commit()
    logger.info("Customer deleted account_id=%s customer_id=%s", account_id, customer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
