"""
app/services package marker.
"""

from app.services.metrics_cache import CacheKey, MetricsCache
from app.services.metrics_engine import MetricsEngine, SubscriptionReader

__all__ = [
    "CacheKey",
    "MetricsCache",
    "MetricsEngine",
    "SubscriptionReader",
]
