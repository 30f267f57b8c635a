"""
app/schemas/metrics.py

Response schemas for metrics endpoints.
"""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field


class MetricValueResponse(BaseModel):
    """
    One metric for the reference month and the month before it.
    """

    current: float
    previous: float
    growth: float


class MetricsSnapshotResponse(BaseModel):
    mrr: MetricValueResponse
    arr: MetricValueResponse
    churn: MetricValueResponse
    ltv: MetricValueResponse
    cac: MetricValueResponse


class HistoricalEntryResponse(MetricsSnapshotResponse):
    """
    Metrics snapshot for one calendar month; ``month`` is ``YYYY-MM``.
    """

    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    date: dt.date


class CustomerGrowthEntryResponse(BaseModel):
    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    date: dt.date
    total: int = Field(..., ge=0)
    active: int = Field(..., ge=0)
    churned: int = Field(..., ge=0)


class MetricsOverviewResponse(BaseModel):
    """
    Dashboard payload: current metrics plus both monthly series.
    """

    current: MetricsSnapshotResponse
    historical: list[HistoricalEntryResponse] = Field(default_factory=list)
    customer_growth: list[CustomerGrowthEntryResponse] = Field(default_factory=list)


class RefreshResponse(BaseModel):
    message: str
