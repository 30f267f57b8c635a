"""
app/api/routers/payment_router.py

Payment endpoints for one account.

GET    /accounts/{account_id}/payments                   paginated list with filters
GET    /accounts/{account_id}/payments/stats/summary     status counts and net revenue
GET    /accounts/{account_id}/payments/{payment_id}      one payment
POST   /accounts/{account_id}/payments                   record a payment
PUT    /accounts/{account_id}/payments/{payment_id}      update status, amount or refund
DELETE /accounts/{account_id}/payments/{payment_id}      delete (completed payments are kept)

Revenue figures are net of refunds and count completed payments only.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.api.dependencies import (
    commit_or_409,
    get_owned_or_404,
    get_subscription_repository,
    get_today,
    require_account,
)
from app.schemas.common import Pagination
from app.schemas.payments import (
    PaymentCreateRequest,
    PaymentListResponse,
    PaymentResponse,
    PaymentStatusName,
    PaymentSummaryResponse,
    PaymentUpdateRequest,
)
from db.models.customer import Customer
from db.models.payment import Payment, PaymentStatus
from db.models.plan import Plan
from db.repositories.subscription_repository import SubscriptionRepository
from db.session import get_db
from kpi.periods import MonthPeriod

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounts/{account_id}/payments", tags=["payments"])


def _require_owned(
    db: Session,
    model: type[Customer] | type[Plan],
    account_id: uuid.UUID,
    record_id: uuid.UUID,
    label: str,
) -> None:
    record = db.get(model, record_id)
    if record is None or record.account_id != account_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{label} not found or does not belong to this account.",
        )


@router.get("/stats/summary", response_model=PaymentSummaryResponse)
def get_payment_summary(
    account_id: uuid.UUID,
    reference_date: date | None = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
    repository: SubscriptionRepository = Depends(get_subscription_repository),
    today: date = Depends(get_today),
) -> PaymentSummaryResponse:
    """
    ``monthly_revenue`` covers the calendar month containing ``date``
    (default today).
    """
    counts: dict[str, int] = dict(
        db.execute(
            select(Payment.status, func.count(Payment.id))
            .where(Payment.account_id == account_id)
            .group_by(Payment.status)
        ).all()
    )
    month = MonthPeriod.containing(reference_date or today)

    return PaymentSummaryResponse(
        total=sum(counts.values()),
        completed=counts.get(PaymentStatus.COMPLETED, 0),
        pending=counts.get(PaymentStatus.PENDING, 0),
        failed=counts.get(PaymentStatus.FAILED, 0),
        total_revenue=repository.net_payment_revenue(account_id),
        monthly_revenue=repository.net_payment_revenue(account_id, month.start, month.end),
    )


@router.get("", response_model=PaymentListResponse)
def list_payments(
    account_id: uuid.UUID,
    status_filter: PaymentStatusName | None = Query(default=None, alias="status"),
    customer_id: uuid.UUID | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
) -> PaymentListResponse:
    stmt = select(Payment).where(Payment.account_id == account_id)
    if status_filter is not None:
        stmt = stmt.where(Payment.status == status_filter)
    if customer_id is not None:
        stmt = stmt.where(Payment.customer_id == customer_id)
    if start_date is not None:
        stmt = stmt.where(Payment.payment_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(Payment.payment_date <= end_date)

    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    payments = db.scalars(
        stmt.order_by(Payment.payment_date.desc(), Payment.id)
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return PaymentListResponse(
        payments=[PaymentResponse.from_model(p, today) for p in payments],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{payment_id}", response_model=PaymentResponse)
def get_payment(
    account_id: uuid.UUID,
    payment_id: uuid.UUID,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
) -> PaymentResponse:
    payment = get_owned_or_404(db, Payment, account_id, payment_id, "Payment")
    return PaymentResponse.from_model(payment, today)


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def create_payment(
    account_id: uuid.UUID,
    body: PaymentCreateRequest,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
) -> PaymentResponse:
    """
    Record a payment. Customer and plan must both belong to the account;
    ``payment_date`` defaults to today.
    """
    require_account(db, account_id)
    _require_owned(db, Customer, account_id, body.customer_id, "Customer")
    _require_owned(db, Plan, account_id, body.plan_id, "Plan")

    payment = Payment(
        account_id=account_id,
        customer_id=body.customer_id,
        plan_id=body.plan_id,
        amount=body.amount,
        currency=body.currency.upper(),
        status=body.status,
        payment_date=body.payment_date or today,
        due_date=body.due_date,
    )
    db.add(payment)
    commit_or_409(db, payment, "Payment conflicts with an existing record.")
    logger.info(
        "Payment recorded account_id=%s payment_id=%s amount=%.2f status=%s",
        account_id,
        payment.id,
        payment.amount,
        payment.status,
    )
    return PaymentResponse.from_model(payment, today)


@router.put("/{payment_id}", response_model=PaymentResponse)
def update_payment(
    account_id: uuid.UUID,
    payment_id: uuid.UUID,
    body: PaymentUpdateRequest,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
) -> PaymentResponse:
    """
    Update a payment. Raises HTTP 400 when the refund would exceed the
    payment amount.
    """
    payment = get_owned_or_404(db, Payment, account_id, payment_id, "Payment")
    changes = body.model_dump(exclude_unset=True, exclude_none=True)

    amount = changes.get("amount", payment.amount)
    refund = changes.get("refund_amount", payment.refund_amount)
    if refund > amount:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Refund amount cannot exceed payment amount.",
        )

    for field, value in changes.items():
        setattr(payment, field, value)
    commit_or_409(db, payment, "Payment update conflicts with an existing record.")
    return PaymentResponse.from_model(payment, today)


@router.delete("/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_payment(
    account_id: uuid.UUID,
    payment_id: uuid.UUID,
    db: Session = Depends(get_db),
) -> Response:
    payment = get_owned_or_404(db, Payment, account_id, payment_id, "Payment")
    if payment.status == PaymentStatus.COMPLETED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete completed payments.",
        )
    db.delete(payment)
    db.commit()
    logger.info("Payment deleted account_id=%s payment_id=%s", account_id, payment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
