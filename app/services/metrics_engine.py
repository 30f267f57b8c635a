"""
app/services/metrics_engine.py

Derived SaaS metrics for one account.

Wires SubscriptionRepository → kpi.saas formulas → MetricsCache:

    SubscriptionRepository  – account-scoped customer reads and counts
    kpi.saas                – pure arithmetic with zero-guards
    MetricsCache            – short-lived results keyed by (metric, account, period)

Every operation takes an explicit reference date; the calendar month that
contains it is the measurement period. Nothing here reads the wall clock.

Failure contract
----------------
- Repository errors propagate unchanged. There is no retry and no partial
  result; one failing metric fails :meth:`MetricsEngine.get_all_metrics`.
- Division-by-zero cases return 0 (see :mod:`kpi.saas`).
- A non-positive ``months`` argument raises ``ValueError``.

Known simplifications
---------------------
- LTV's ARPU is taken over every customer whose status is currently
  ``active``, regardless of the reference date.
- LTV and CAC report ``previous = 0`` and ``growth = 0``.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Protocol

from app.domain.metrics import (
    METRIC_NAMES,
    CustomerGrowthEntry,
    HistoricalEntry,
    MetricsSnapshot,
    MetricValue,
)
from app.services.metrics_cache import CacheKey, MetricsCache
from db.models.customer import CustomerStatus
from db.repositories.types import CustomerCriteria, CustomerSnapshot
from kpi import saas
from kpi.periods import MonthPeriod, trailing_months

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 5


class SubscriptionReader(Protocol):
    """
    Read side of the persistence collaborator. Implemented by
    :class:`db.repositories.subscription_repository.SubscriptionRepository`.
    """

    def find_customers(
        self,
        account_id: uuid.UUID,
        criteria: CustomerCriteria,
    ) -> list[CustomerSnapshot]:
        ...

    def count_customers(
        self,
        account_id: uuid.UUID,
        criteria: CustomerCriteria,
    ) -> int:
        ...

    def net_payment_revenue(
        self,
        account_id: uuid.UUID,
        start: date,
        end: date,
    ) -> float:
        ...


def _monthly_prices(customers: list[CustomerSnapshot]) -> list[float]:
    return [saas.monthly_price(c.plan_price, c.plan_billing_cycle) for c in customers]


class MetricsEngine:
    """
    Computes MRR, ARR, churn rate, LTV, CAC and monthly series.

    Parameters
    ----------
    repository:
        Account-scoped reader. Must be safe to call from several threads.
    cache:
        Shared result cache. Inject a fresh instance per test for isolation.
    max_workers:
        Thread pool width used by :meth:`get_all_metrics`.

    Usage::

        engine = MetricsEngine(SubscriptionRepository(), MetricsCache())
        engine.calculate_mrr(account_id, date(2026, 3, 15)).current
    """

    def __init__(
        self,
        repository: SubscriptionReader,
        cache: MetricsCache,
        *,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self._repository = repository
        self._cache = cache
        self._max_workers = max(1, max_workers)

    # ------------------------------------------------------------------
    # MRR / ARR
    # ------------------------------------------------------------------

    def calculate_mrr(self, account_id: uuid.UUID, as_of: date) -> MetricValue:
        """
        Monthly Recurring Revenue for ``as_of``'s month and the month before.

        A customer counts when its status is ``active`` and it subscribed on
        or before the last day of the month. ``growth`` is a percentage.
        """
        period = MonthPeriod.containing(as_of)

        def _compute() -> MetricValue:
            current = self._mrr_for(account_id, period)
            previous = self._mrr_for(account_id, period.previous())
            logger.debug(
                "MRR computed account_id=%s period=%s current=%.4f previous=%.4f",
                account_id,
                period,
                current,
                previous,
            )
            return MetricValue(
                current=current,
                previous=previous,
                growth=saas.growth_percentage(current, previous),
            )

        return self._cache.get_or_compute(CacheKey("mrr", account_id, period), _compute)

    def calculate_arr(self, account_id: uuid.UUID, as_of: date) -> MetricValue:
        """Annual Recurring Revenue: MRR × 12, growth mirrors MRR's."""
        mrr = self.calculate_mrr(account_id, as_of)
        return MetricValue(
            current=saas.annualize(mrr.current),
            previous=saas.annualize(mrr.previous),
            growth=mrr.growth,
        )

    def _mrr_for(self, account_id: uuid.UUID, period: MonthPeriod) -> float:
        customers = self._repository.find_customers(
            account_id,
            CustomerCriteria(
                status=CustomerStatus.ACTIVE,
                subscribed_on_or_before=period.end,
            ),
        )
        return saas.recurring_revenue(_monthly_prices(customers))

    # ------------------------------------------------------------------
    # Churn
    # ------------------------------------------------------------------

    def calculate_churn_rate(self, account_id: uuid.UUID, as_of: date) -> MetricValue:
        """
        Churn rate (percent) for ``as_of``'s month and the month before.

        ``growth`` here is the plain difference ``current - previous``.
        """
        period = MonthPeriod.containing(as_of)

        def _compute() -> MetricValue:
            current = self._churn_for(account_id, period)
            previous = self._churn_for(account_id, period.previous())
            return MetricValue(current=current, previous=previous, growth=current - previous)

        return self._cache.get_or_compute(CacheKey("churn", account_id, period), _compute)

    def _churn_for(self, account_id: uuid.UUID, period: MonthPeriod) -> float:
        customers_at_start = self._repository.count_customers(
            account_id,
            CustomerCriteria(
                status=CustomerStatus.ACTIVE,
                subscribed_before=period.start,
            ),
        )
        churned = self._repository.count_customers(
            account_id,
            CustomerCriteria(
                status=CustomerStatus.CHURNED,
                churned_on_or_after=period.start,
                churned_on_or_before=period.end,
            ),
        )
        rate = saas.churn_rate_percent(churned, customers_at_start)
        logger.debug(
            "Churn computed account_id=%s period=%s rate=%.4f (%d churned / %d at start)",
            account_id,
            period,
            rate,
            churned,
            customers_at_start,
        )
        return rate

    # ------------------------------------------------------------------
    # LTV / CAC
    # ------------------------------------------------------------------

    def calculate_ltv(self, account_id: uuid.UUID, as_of: date) -> MetricValue:
        """
        Customer Lifetime Value = ARPU / monthly churn fraction.

        ARPU is taken over every currently active customer. ``previous`` and
        ``growth`` are always 0.
        """
        period = MonthPeriod.containing(as_of)

        def _compute() -> MetricValue:
            churn = self.calculate_churn_rate(account_id, as_of)
            active = self._repository.find_customers(
                account_id,
                CustomerCriteria(status=CustomerStatus.ACTIVE),
            )
            arpu = saas.average_revenue_per_user(_monthly_prices(active))
            ltv = saas.lifetime_value(arpu, churn.current)
            logger.debug(
                "LTV computed account_id=%s period=%s ltv=%.4f (ARPU=%.4f churn=%.4f%%)",
                account_id,
                period,
                ltv,
                arpu,
                churn.current,
            )
            return MetricValue(current=ltv)

        return self._cache.get_or_compute(CacheKey("ltv", account_id, period), _compute)

    def calculate_cac(self, account_id: uuid.UUID, as_of: date) -> MetricValue:
        """
        Customer Acquisition Cost over customers who subscribed during
        ``as_of``'s month. ``previous`` and ``growth`` are always 0.
        """
        period = MonthPeriod.containing(as_of)

        def _compute() -> MetricValue:
            new_customers = self._repository.find_customers(
                account_id,
                CustomerCriteria(
                    subscribed_on_or_after=period.start,
                    subscribed_on_or_before=period.end,
                ),
            )
            cac = saas.acquisition_cost(c.acquisition_cost for c in new_customers)
            logger.debug(
                "CAC computed account_id=%s period=%s cac=%.4f new_customers=%d",
                account_id,
                period,
                cac,
                len(new_customers),
            )
            return MetricValue(current=cac)

        return self._cache.get_or_compute(CacheKey("cac", account_id, period), _compute)

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def calculate_net_revenue(self, account_id: uuid.UUID, as_of: date) -> MetricValue:
        """
        Collected revenue (completed payments, net of refunds) for
        ``as_of``'s month and the month before; ``growth`` is a percentage.
        """
        period = MonthPeriod.containing(as_of)

        def _compute() -> MetricValue:
            previous_period = period.previous()
            current = self._repository.net_payment_revenue(account_id, period.start, period.end)
            previous = self._repository.net_payment_revenue(
                account_id, previous_period.start, previous_period.end
            )
            return MetricValue(
                current=current,
                previous=previous,
                growth=saas.growth_percentage(current, previous),
            )

        return self._cache.get_or_compute(CacheKey("net_revenue", account_id, period), _compute)

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def get_all_metrics(self, account_id: uuid.UUID, as_of: date) -> MetricsSnapshot:
        """
        Compute the five headline metrics concurrently.

        Every metric's ``growth`` is replaced by the generic growth
        percentage of its ``current`` over ``previous``. The first failing
        calculation's exception is re-raised once all tasks have finished.
        """
        calculations: dict[str, Callable[[uuid.UUID, date], MetricValue]] = {
            "mrr": self.calculate_mrr,
            "arr": self.calculate_arr,
            "churn": self.calculate_churn_rate,
            "ltv": self.calculate_ltv,
            "cac": self.calculate_cac,
        }

        started = time.monotonic()
        with ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(calculations)),
            thread_name_prefix="metrics",
        ) as pool:
            futures = {
                name: pool.submit(calculate, account_id, as_of)
                for name, calculate in calculations.items()
            }
            results = {name: futures[name].result() for name in METRIC_NAMES}

        logger.debug(
            "get_all_metrics account_id=%s as_of=%s elapsed=%.3fs",
            account_id,
            as_of.isoformat(),
            time.monotonic() - started,
        )
        return MetricsSnapshot(
            **{
                name: value.with_growth(saas.growth_percentage(value.current, value.previous))
                for name, value in results.items()
            }
        )

    def get_historical_data(
        self,
        account_id: uuid.UUID,
        months: int,
        as_of: date,
    ) -> tuple[HistoricalEntry, ...]:
        """
        Full metric snapshots for the *months* calendar months ending with
        ``as_of``'s month, oldest first.
        """
        last = MonthPeriod.containing(as_of)
        window = trailing_months(last, months)

        def _compute() -> tuple[HistoricalEntry, ...]:
            entries = tuple(
                HistoricalEntry(
                    month=period.label,
                    date=period.start,
                    metrics=self.get_all_metrics(account_id, period.start),
                )
                for period in window
            )
            logger.info(
                "Historical metrics computed account_id=%s months=%d through=%s",
                account_id,
                months,
                last,
            )
            return entries

        return self._cache.get_or_compute(
            CacheKey("historical", account_id, (last, months)),
            _compute,
        )

    def get_customer_growth(
        self,
        account_id: uuid.UUID,
        months: int,
        as_of: date,
    ) -> tuple[CustomerGrowthEntry, ...]:
        """
        Total, active and churned customer counts as of each month's end,
        for the *months* months ending with ``as_of``'s month, oldest first.
        """
        last = MonthPeriod.containing(as_of)
        window = trailing_months(last, months)

        def _compute() -> tuple[CustomerGrowthEntry, ...]:
            return tuple(self._customer_counts(account_id, period) for period in window)

        return self._cache.get_or_compute(
            CacheKey("customer_growth", account_id, (last, months)),
            _compute,
        )

    def _customer_counts(self, account_id: uuid.UUID, period: MonthPeriod) -> CustomerGrowthEntry:
        count = self._repository.count_customers
        return CustomerGrowthEntry(
            month=period.label,
            date=period.start,
            total=count(
                account_id,
                CustomerCriteria(subscribed_on_or_before=period.end),
            ),
            active=count(
                account_id,
                CustomerCriteria(
                    status=CustomerStatus.ACTIVE,
                    subscribed_on_or_before=period.end,
                ),
            ),
            churned=count(
                account_id,
                CustomerCriteria(
                    status=CustomerStatus.CHURNED,
                    churned_on_or_before=period.end,
                ),
            ),
        )

    # ------------------------------------------------------------------
    # Cache control
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        """Invalidate every cached result for every account."""
        self._cache.clear()
