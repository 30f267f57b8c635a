"""
kpi/periods.py

Calendar-month windows used by every metric.

A month covers the inclusive date range ``[start, end]`` where ``start`` is
the first day and ``end`` the last day of the month.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True, order=True)
class MonthPeriod:
    """
    One calendar month. Hashable, so it can be part of a cache key.
    """

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be in 1..12, got {self.month}")

    @classmethod
    def containing(cls, day: date) -> MonthPeriod:
        return cls(day.year, day.month)

    @property
    def start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        last_day = calendar.monthrange(self.year, self.month)[1]
        return date(self.year, self.month, last_day)

    @property
    def label(self) -> str:
        """ISO ``YYYY-MM`` label."""
        return f"{self.year:04d}-{self.month:02d}"

    def shift(self, months: int) -> MonthPeriod:
        index = self.year * 12 + (self.month - 1) + months
        return MonthPeriod(index // 12, index % 12 + 1)

    def previous(self) -> MonthPeriod:
        return self.shift(-1)

    def __str__(self) -> str:
        return self.label


def trailing_months(last: MonthPeriod, count: int) -> list[MonthPeriod]:
    """
    The *count* months ending with *last*, oldest first.

    Raises ValueError when *count* is not positive.
    """
    if count < 1:
        raise ValueError(f"count must be a positive number of months, got {count}")
    return [last.shift(-offset) for offset in range(count - 1, -1, -1)]
