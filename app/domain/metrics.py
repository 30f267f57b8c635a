"""
app/domain/metrics.py

Result types produced by the metrics engine.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Any

METRIC_NAMES: tuple[str, ...] = ("mrr", "arr", "churn", "ltv", "cac")


@dataclass(frozen=True)
class MetricValue:
    """
    One metric for a reference month and the month before it.

    ``growth`` is either a percentage (MRR, ARR, and every metric inside an
    aggregate snapshot) or a plain delta (stand-alone churn rate).
    """

    current: float
    previous: float = 0.0
    growth: float = 0.0

    def with_growth(self, growth: float) -> MetricValue:
        return replace(self, growth=growth)

    def to_dict(self) -> dict[str, float]:
        return {"current": self.current, "previous": self.previous, "growth": self.growth}


@dataclass(frozen=True)
class MetricsSnapshot:
    """All five headline metrics for one account and month."""

    mrr: MetricValue
    arr: MetricValue
    churn: MetricValue
    ltv: MetricValue
    cac: MetricValue

    def to_dict(self) -> dict[str, dict[str, float]]:
        return {name: getattr(self, name).to_dict() for name in METRIC_NAMES}


@dataclass(frozen=True)
class HistoricalEntry:
    month: str
    date: date
    metrics: MetricsSnapshot

    def to_dict(self) -> dict[str, Any]:
        return {"month": self.month, "date": self.date, **self.metrics.to_dict()}


@dataclass(frozen=True)
class CustomerGrowthEntry:
    month: str
    date: date
    total: int
    active: int
    churned: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "month": self.month,
            "date": self.date,
            "total": self.total,
            "active": self.active,
            "churned": self.churned,
        }
