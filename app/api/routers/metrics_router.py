"""
app/api/routers/metrics_router.py

Metrics endpoints for one account.

GET  /accounts/{account_id}/metrics                  current + historical + customer growth
GET  /accounts/{account_id}/metrics/mrr              MRR
GET  /accounts/{account_id}/metrics/arr              ARR
GET  /accounts/{account_id}/metrics/churn            churn rate
GET  /accounts/{account_id}/metrics/ltv              LTV
GET  /accounts/{account_id}/metrics/cac              CAC
GET  /accounts/{account_id}/metrics/revenue          net collected revenue
GET  /accounts/{account_id}/metrics/historical       monthly metric snapshots
GET  /accounts/{account_id}/metrics/customer-growth  monthly customer counts
POST /accounts/{account_id}/metrics/refresh          clear the metrics cache

Query parameters
----------------
date   : optional ISO reference date (YYYY-MM-DD); defaults to today
months : number of months in a series, 1..METRICS_HISTORY_MAX_MONTHS

The router only handles HTTP plumbing. Any engine failure is logged and
mapped to a generic HTTP 500.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import date
from typing import TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.dependencies import get_metrics_engine, get_today
from app.config import MetricsSettings, get_metrics_settings
from app.schemas.metrics import (
    CustomerGrowthEntryResponse,
    HistoricalEntryResponse,
    MetricsOverviewResponse,
    MetricsSnapshotResponse,
    MetricValueResponse,
    RefreshResponse,
)
from app.services.metrics_engine import MetricsEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounts/{account_id}/metrics", tags=["metrics"])

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Helpers (no business logic)
# ---------------------------------------------------------------------------


def _resolve_months(months: int | None, settings: MetricsSettings) -> int:
    if months is None:
        return settings.history_default_months
    if months > settings.history_max_months:
        raise HTTPException(
            status_code=422,
            detail=f"months must be between 1 and {settings.history_max_months}.",
        )
    return months


def _call_engine(label: str, account_id: uuid.UUID, call: Callable[[], T]) -> T:
    try:
        return call()
    except Exception as exc:  # noqa: BLE001
        logger.exception("Metrics request failed metric=%s account_id=%s", label, account_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Server error while fetching {label}.",
        ) from exc


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=MetricsOverviewResponse)
def get_metrics_overview(
    account_id: uuid.UUID,
    reference_date: date | None = Query(default=None, alias="date"),
    months: int | None = Query(default=None, ge=1),
    engine: MetricsEngine = Depends(get_metrics_engine),
    settings: MetricsSettings = Depends(get_metrics_settings),
    today: date = Depends(get_today),
) -> MetricsOverviewResponse:
    """
    Current metrics for ``date`` plus the historical and customer-growth
    series ending at today's month.
    """
    window = _resolve_months(months, settings)
    as_of = reference_date or today

    def _load() -> MetricsOverviewResponse:
        current = engine.get_all_metrics(account_id, as_of)
        historical = engine.get_historical_data(account_id, window, today)
        growth = engine.get_customer_growth(account_id, window, today)
        return MetricsOverviewResponse(
            current=MetricsSnapshotResponse.model_validate(current.to_dict()),
            historical=[HistoricalEntryResponse.model_validate(e.to_dict()) for e in historical],
            customer_growth=[CustomerGrowthEntryResponse.model_validate(e.to_dict()) for e in growth],
        )

    return _call_engine("metrics", account_id, _load)


@router.get("/mrr", response_model=dict[str, MetricValueResponse])
def get_mrr(
    account_id: uuid.UUID,
    reference_date: date | None = Query(default=None, alias="date"),
    engine: MetricsEngine = Depends(get_metrics_engine),
    today: date = Depends(get_today),
) -> dict[str, MetricValueResponse]:
    value = _call_engine(
        "MRR", account_id, lambda: engine.calculate_mrr(account_id, reference_date or today)
    )
    return {"mrr": MetricValueResponse.model_validate(value.to_dict())}


@router.get("/arr", response_model=dict[str, MetricValueResponse])
def get_arr(
    account_id: uuid.UUID,
    reference_date: date | None = Query(default=None, alias="date"),
    engine: MetricsEngine = Depends(get_metrics_engine),
    today: date = Depends(get_today),
) -> dict[str, MetricValueResponse]:
    value = _call_engine(
        "ARR", account_id, lambda: engine.calculate_arr(account_id, reference_date or today)
    )
    return {"arr": MetricValueResponse.model_validate(value.to_dict())}


@router.get("/churn", response_model=dict[str, MetricValueResponse])
def get_churn(
    account_id: uuid.UUID,
    reference_date: date | None = Query(default=None, alias="date"),
    engine: MetricsEngine = Depends(get_metrics_engine),
    today: date = Depends(get_today),
) -> dict[str, MetricValueResponse]:
    value = _call_engine(
        "churn rate",
        account_id,
        lambda: engine.calculate_churn_rate(account_id, reference_date or today),
    )
    return {"churn": MetricValueResponse.model_validate(value.to_dict())}


@router.get("/ltv", response_model=dict[str, MetricValueResponse])
def get_ltv(
    account_id: uuid.UUID,
    reference_date: date | None = Query(default=None, alias="date"),
    engine: MetricsEngine = Depends(get_metrics_engine),
    today: date = Depends(get_today),
) -> dict[str, MetricValueResponse]:
    value = _call_engine(
        "LTV", account_id, lambda: engine.calculate_ltv(account_id, reference_date or today)
    )
    return {"ltv": MetricValueResponse.model_validate(value.to_dict())}


@router.get("/cac", response_model=dict[str, MetricValueResponse])
def get_cac(
    account_id: uuid.UUID,
    reference_date: date | None = Query(default=None, alias="date"),
    engine: MetricsEngine = Depends(get_metrics_engine),
    today: date = Depends(get_today),
) -> dict[str, MetricValueResponse]:
    value = _call_engine(
        "CAC", account_id, lambda: engine.calculate_cac(account_id, reference_date or today)
    )
    return {"cac": MetricValueResponse.model_validate(value.to_dict())}


@router.get("/revenue", response_model=dict[str, MetricValueResponse])
def get_net_revenue(
    account_id: uuid.UUID,
    reference_date: date | None = Query(default=None, alias="date"),
    engine: MetricsEngine = Depends(get_metrics_engine),
    today: date = Depends(get_today),
) -> dict[str, MetricValueResponse]:
    value = _call_engine(
        "revenue",
        account_id,
        lambda: engine.calculate_net_revenue(account_id, reference_date or today),
    )
    return {"revenue": MetricValueResponse.model_validate(value.to_dict())}


@router.get("/historical", response_model=dict[str, list[HistoricalEntryResponse]])
def get_historical(
    account_id: uuid.UUID,
    months: int | None = Query(default=None, ge=1),
    engine: MetricsEngine = Depends(get_metrics_engine),
    settings: MetricsSettings = Depends(get_metrics_settings),
    today: date = Depends(get_today),
) -> dict[str, list[HistoricalEntryResponse]]:
    window = _resolve_months(months, settings)
    entries = _call_engine(
        "historical data",
        account_id,
        lambda: engine.get_historical_data(account_id, window, today),
    )
    return {"historical_data": [HistoricalEntryResponse.model_validate(e.to_dict()) for e in entries]}


@router.get("/customer-growth", response_model=dict[str, list[CustomerGrowthEntryResponse]])
def get_customer_growth(
    account_id: uuid.UUID,
    months: int | None = Query(default=None, ge=1),
    engine: MetricsEngine = Depends(get_metrics_engine),
    settings: MetricsSettings = Depends(get_metrics_settings),
    today: date = Depends(get_today),
) -> dict[str, list[CustomerGrowthEntryResponse]]:
    window = _resolve_months(months, settings)
    entries = _call_engine(
        "customer growth data",
        account_id,
        lambda: engine.get_customer_growth(account_id, window, today),
    )
    return {
        "customer_growth": [CustomerGrowthEntryResponse.model_validate(e.to_dict()) for e in entries]
    }


@router.post("/refresh", response_model=RefreshResponse, status_code=status.HTTP_200_OK)
def refresh_metrics(
    account_id: uuid.UUID,
    engine: MetricsEngine = Depends(get_metrics_engine),
) -> RefreshResponse:
    """
    Drop every cached metric (for all accounts) so the next read recomputes.
    """
    engine.clear_cache()
    logger.info("Metrics cache refreshed by account_id=%s", account_id)
    return RefreshResponse(message="Metrics cache refreshed successfully")
