"""
app/domain package marker.
"""

from app.domain.metrics import (
    METRIC_NAMES,
    CustomerGrowthEntry,
    HistoricalEntry,
    MetricsSnapshot,
    MetricValue,
)

__all__ = [
    "METRIC_NAMES",
    "CustomerGrowthEntry",
    "HistoricalEntry",
    "MetricsSnapshot",
    "MetricValue",
]
