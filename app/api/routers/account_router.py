"""
app/api/routers/account_router.py

Account management endpoints.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.api.dependencies import require_account
from app.schemas.accounts import AccountCreateRequest, AccountResponse
from db.models.account import Account
from db.session import get_db

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.post(
    "",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_account(
    body: AccountCreateRequest,
    db: Session = Depends(get_db),
) -> AccountResponse:
    """
    Create a new account.

    Raises HTTP 409 if an account with the same name already exists.
    """
    account = Account(name=body.name.strip())
    db.add(account)
    try:
        db.commit()
        db.refresh(account)
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"An account with name {body.name!r} already exists.",
        ) from exc
    return AccountResponse.model_validate(account)


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: uuid.UUID,
    db: Session = Depends(get_db),
) -> AccountResponse:
    """
    Fetch one account. Raises HTTP 404 when it does not exist.
    """
    return AccountResponse.model_validate(require_account(db, account_id))
