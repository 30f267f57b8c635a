"""
app/schemas/accounts.py

Request and response schemas for account endpoints.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class AccountCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class AccountResponse(BaseModel):
    id: uuid.UUID
    name: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
