"""
app/schemas/common.py

Pieces shared by the list endpoints.
"""

from __future__ import annotations

import math

from pydantic import BaseModel


class Pagination(BaseModel):
    current: int
    pages: int
    total: int
    limit: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> Pagination:
        return cls(current=page, pages=math.ceil(total / limit), total=total, limit=limit)
