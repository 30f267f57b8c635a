"""
app/services/metrics_cache.py

Process-wide TTL cache for computed metrics.

Entries are keyed by a structured :class:`CacheKey` and are never evicted
individually: a stale entry stays in the map until the next lookup for the
same key recomputes and supersedes it, or until :meth:`MetricsCache.clear`
wipes everything.

Concurrent lookups for the same stale key may each run the compute
function. Computations are side-effect-free reads, so the only cost is
duplicate work. The lock guards the map itself and is never held while
computing.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from threading import Lock
from typing import Any, NamedTuple, TypeVar

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0

T = TypeVar("T")


class CacheKey(NamedTuple):
    """
    Identity of one cached computation.

    ``period`` is any hashable value describing the time window, typically a
    :class:`kpi.periods.MonthPeriod` or a ``(MonthPeriod, months)`` tuple.
    """

    metric: str
    account_id: uuid.UUID
    period: Hashable


@dataclass(frozen=True)
class _CacheEntry:
    value: Any
    computed_at: float


class MetricsCache:
    """
    Time-to-live cache with a compute-on-miss interface.

    Parameters
    ----------
    ttl_seconds:
        Validity window of an entry, measured from the moment it was stored.
    clock:
        Monotonic time source in seconds. Injected by tests.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[CacheKey, _CacheEntry] = {}
        self._lock = Lock()

    def get_or_compute(self, key: CacheKey, compute: Callable[[], T]) -> T:
        """
        Return the cached value for *key* if it is younger than the TTL,
        otherwise call *compute*, store its result and return it.

        Exceptions raised by *compute* propagate and leave the cache
        unchanged.
        """
        with self._lock:
            entry = self._entries.get(key)
            now = self._clock()
        if entry is not None and now - entry.computed_at < self.ttl_seconds:
            logger.debug("Metrics cache hit key=%s", key)
            return entry.value

        logger.debug("Metrics cache miss key=%s", key)
        value = compute()
        with self._lock:
            self._entries[key] = _CacheEntry(value=value, computed_at=self._clock())
        return value

    def clear(self) -> None:
        """Remove every entry for every account."""
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        logger.info("Metrics cache cleared entries=%d", removed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict[str, float]:
        """Return cache statistics."""
        with self._lock:
            return {"size": len(self._entries), "ttl_seconds": self.ttl_seconds}
