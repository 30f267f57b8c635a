"""
tests/test_metrics_engine.py

MetricsEngine against the in-memory FakeSubscriptionRepository from conftest.

Reference month throughout is March 2026 (REFERENCE_DATE = 2026-03-15),
so the "previous" month is February 2026.
"""

from __future__ import annotations

from datetime import date

import pytest

from app.services.metrics_cache import MetricsCache
from app.services.metrics_engine import MetricsEngine
from conftest import (
    ACCOUNT_ID,
    OTHER_ACCOUNT_ID,
    REFERENCE_DATE,
    FakeSubscriptionRepository,
    make_customer,
)
from db.repositories.errors import UnscopedQueryError


def _churn_population() -> list:
    """Eight active customers since December, two churned in early March."""
    active = [make_customer() for _ in range(8)]
    churned = [
        make_customer(status="churned", churned=date(2026, 3, 5)) for _ in range(2)
    ]
    return active + churned


# ---------------------------------------------------------------------------
# MRR / ARR
# ---------------------------------------------------------------------------


class TestMRR:
    def test_current_previous_and_growth(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [
            make_customer(price=100.0),
            make_customer(price=100.0),
            make_customer(price=50.0, subscribed=date(2026, 3, 10)),
        ]

        mrr = engine.calculate_mrr(ACCOUNT_ID, REFERENCE_DATE)

        assert mrr.current == pytest.approx(250.0)
        assert mrr.previous == pytest.approx(200.0)
        assert mrr.growth == pytest.approx(25.0)

    def test_annual_and_quarterly_plans_are_normalised(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [
            make_customer(price=1200.0, cycle="yearly"),
            make_customer(price=300.0, cycle="quarterly"),
        ]
        assert engine.calculate_mrr(ACCOUNT_ID, REFERENCE_DATE).current == pytest.approx(200.0)

    def test_subscription_on_last_day_of_month_counts(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [make_customer(subscribed=date(2026, 3, 31))]
        mrr = engine.calculate_mrr(ACCOUNT_ID, REFERENCE_DATE)
        assert mrr.current == pytest.approx(100.0)
        assert mrr.previous == 0.0

    def test_growth_is_zero_when_previous_month_empty(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [make_customer(subscribed=date(2026, 3, 2))]
        assert engine.calculate_mrr(ACCOUNT_ID, REFERENCE_DATE).growth == 0.0

    def test_non_active_customers_excluded(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [
            make_customer(),
            make_customer(status="trial"),
            make_customer(status="suspended"),
            make_customer(status="churned", churned=date(2026, 2, 1)),
        ]
        assert engine.calculate_mrr(ACCOUNT_ID, REFERENCE_DATE).current == pytest.approx(100.0)

    def test_empty_account_is_all_zero(self, engine: MetricsEngine) -> None:
        mrr = engine.calculate_mrr(ACCOUNT_ID, REFERENCE_DATE)
        assert (mrr.current, mrr.previous, mrr.growth) == (0.0, 0.0, 0.0)


class TestARR:
    def test_twelve_times_mrr_with_mirrored_growth(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [
            make_customer(price=100.0),
            make_customer(price=100.0),
            make_customer(price=50.0, subscribed=date(2026, 3, 10)),
        ]
        mrr = engine.calculate_mrr(ACCOUNT_ID, REFERENCE_DATE)
        arr = engine.calculate_arr(ACCOUNT_ID, REFERENCE_DATE)

        assert arr.current == pytest.approx(mrr.current * 12)
        assert arr.previous == pytest.approx(mrr.previous * 12)
        assert arr.growth == mrr.growth


# ---------------------------------------------------------------------------
# Churn / LTV / CAC
# ---------------------------------------------------------------------------


class TestChurn:
    def test_rate_and_delta_growth(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = _churn_population()

        churn = engine.calculate_churn_rate(ACCOUNT_ID, REFERENCE_DATE)

        assert churn.current == pytest.approx(25.0)
        assert churn.previous == 0.0
        assert churn.growth == pytest.approx(25.0)

    def test_growth_is_delta_not_percentage(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        # February: 1 churned of 10 active at start (10 %).
        # March: 2 churned of 10 active at start (20 %).
        repository.customers = (
            [make_customer() for _ in range(10)]
            + [make_customer(status="churned", churned=date(2026, 2, 20))]
            + [make_customer(status="churned", churned=date(2026, 3, d)) for d in (1, 31)]
        )

        churn = engine.calculate_churn_rate(ACCOUNT_ID, REFERENCE_DATE)

        assert churn.current == pytest.approx(20.0)
        assert churn.previous == pytest.approx(10.0)
        assert churn.growth == pytest.approx(10.0)

    def test_no_customers_at_start_is_zero(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [make_customer(subscribed=date(2026, 3, 1))]
        assert engine.calculate_churn_rate(ACCOUNT_ID, REFERENCE_DATE).current == 0.0


class TestLTV:
    def test_arpu_over_churn_fraction(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = _churn_population()

        ltv = engine.calculate_ltv(ACCOUNT_ID, REFERENCE_DATE)

        # ARPU 100 / 0.25
        assert ltv.current == pytest.approx(400.0)
        assert ltv.previous == 0.0
        assert ltv.growth == 0.0

    def test_zero_churn_gives_zero_ltv(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [make_customer() for _ in range(3)]
        assert engine.calculate_ltv(ACCOUNT_ID, REFERENCE_DATE).current == 0.0

    def test_arpu_ignores_reference_date(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        # A customer subscribing after the reference month still raises ARPU.
        repository.customers = _churn_population() + [
            make_customer(price=1000.0, subscribed=date(2026, 6, 1))
        ]
        arpu = (8 * 100.0 + 1000.0) / 9
        assert engine.calculate_ltv(ACCOUNT_ID, REFERENCE_DATE).current == pytest.approx(
            arpu / 0.25
        )


class TestCAC:
    def test_mean_cost_of_new_customers(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [
            make_customer(acquisition_cost=999.0),
            make_customer(subscribed=date(2026, 3, 1), acquisition_cost=100.0),
            make_customer(subscribed=date(2026, 3, 31), acquisition_cost=300.0),
            make_customer(subscribed=date(2026, 4, 1), acquisition_cost=999.0),
        ]

        cac = engine.calculate_cac(ACCOUNT_ID, REFERENCE_DATE)

        assert cac.current == pytest.approx(200.0)
        assert cac.previous == 0.0
        assert cac.growth == 0.0

    def test_churned_new_customers_still_count(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [
            make_customer(
                status="churned",
                subscribed=date(2026, 3, 2),
                churned=date(2026, 3, 20),
                acquisition_cost=80.0,
            ),
        ]
        assert engine.calculate_cac(ACCOUNT_ID, REFERENCE_DATE).current == pytest.approx(80.0)

    def test_no_new_customers_is_zero(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [make_customer(acquisition_cost=500.0)]
        assert engine.calculate_cac(ACCOUNT_ID, REFERENCE_DATE).current == 0.0


class TestNetRevenue:
    def test_month_totals_and_growth(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.payments = [
            (ACCOUNT_ID, date(2026, 3, 2), 150.0),
            (ACCOUNT_ID, date(2026, 3, 31), 50.0),
            (ACCOUNT_ID, date(2026, 2, 15), 100.0),
            (OTHER_ACCOUNT_ID, date(2026, 3, 5), 999.0),
        ]

        revenue = engine.calculate_net_revenue(ACCOUNT_ID, REFERENCE_DATE)

        assert revenue.current == pytest.approx(200.0)
        assert revenue.previous == pytest.approx(100.0)
        assert revenue.growth == pytest.approx(100.0)


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


class TestGetAllMetrics:
    def test_contains_every_metric(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = _churn_population()
        snapshot = engine.get_all_metrics(ACCOUNT_ID, REFERENCE_DATE)
        assert set(snapshot.to_dict()) == {"mrr", "arr", "churn", "ltv", "cac"}

    def test_growth_recomputed_as_percentage(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = (
            [make_customer() for _ in range(10)]
            + [make_customer(status="churned", churned=date(2026, 2, 20))]
            + [make_customer(status="churned", churned=date(2026, 3, d)) for d in (1, 31)]
        )

        snapshot = engine.get_all_metrics(ACCOUNT_ID, REFERENCE_DATE)

        # Stand-alone churn growth is the delta (10.0); here it is (20 - 10) / 10.
        assert snapshot.churn.current == pytest.approx(20.0)
        assert snapshot.churn.growth == pytest.approx(100.0)
        assert snapshot.ltv.growth == 0.0
        assert snapshot.cac.growth == 0.0

    def test_churn_growth_zero_when_previous_zero(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = _churn_population()
        snapshot = engine.get_all_metrics(ACCOUNT_ID, REFERENCE_DATE)
        assert snapshot.churn.current == pytest.approx(25.0)
        assert snapshot.churn.growth == 0.0

    def test_matches_individual_calculations(
        self, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = _churn_population() + [
            make_customer(subscribed=date(2026, 3, 9), acquisition_cost=120.0)
        ]
        snapshot = MetricsEngine(repository, MetricsCache()).get_all_metrics(
            ACCOUNT_ID, REFERENCE_DATE
        )
        fresh = MetricsEngine(repository, MetricsCache())

        assert snapshot.mrr == fresh.calculate_mrr(ACCOUNT_ID, REFERENCE_DATE)
        assert snapshot.arr.current == fresh.calculate_arr(ACCOUNT_ID, REFERENCE_DATE).current
        assert snapshot.ltv.current == fresh.calculate_ltv(ACCOUNT_ID, REFERENCE_DATE).current
        assert snapshot.cac.current == fresh.calculate_cac(ACCOUNT_ID, REFERENCE_DATE).current

    def test_repository_failure_propagates(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.error = RuntimeError("connection refused")
        with pytest.raises(RuntimeError, match="connection refused"):
            engine.get_all_metrics(ACCOUNT_ID, REFERENCE_DATE)

    def test_failure_is_not_cached(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [make_customer()]
        repository.error = RuntimeError("connection refused")
        with pytest.raises(RuntimeError):
            engine.get_all_metrics(ACCOUNT_ID, REFERENCE_DATE)

        repository.error = None
        assert engine.get_all_metrics(ACCOUNT_ID, REFERENCE_DATE).mrr.current == pytest.approx(
            100.0
        )


class TestHistoricalData:
    def test_months_oldest_first(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [make_customer()]

        history = engine.get_historical_data(ACCOUNT_ID, 3, REFERENCE_DATE)

        assert [entry.month for entry in history] == ["2026-01", "2026-02", "2026-03"]
        assert [entry.date for entry in history] == [
            date(2026, 1, 1),
            date(2026, 2, 1),
            date(2026, 3, 1),
        ]

    def test_each_entry_is_that_months_snapshot(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [
            make_customer(),
            make_customer(subscribed=date(2026, 2, 14)),
        ]

        history = engine.get_historical_data(ACCOUNT_ID, 2, REFERENCE_DATE)

        february, march = history
        assert february.metrics.mrr.current == pytest.approx(200.0)
        assert february.metrics.mrr.previous == pytest.approx(100.0)
        assert march.metrics.mrr.current == pytest.approx(200.0)

    def test_entry_flattens_metrics(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [make_customer()]
        entry = engine.get_historical_data(ACCOUNT_ID, 1, REFERENCE_DATE)[0].to_dict()
        assert set(entry) == {"month", "date", "mrr", "arr", "churn", "ltv", "cac"}

    @pytest.mark.parametrize("months", [0, -3])
    def test_non_positive_months_rejected(self, engine: MetricsEngine, months: int) -> None:
        with pytest.raises(ValueError):
            engine.get_historical_data(ACCOUNT_ID, months, REFERENCE_DATE)

    def test_cached_per_window(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [make_customer()]
        first = engine.get_historical_data(ACCOUNT_ID, 3, REFERENCE_DATE)
        calls_after_first = len(repository.calls)

        second = engine.get_historical_data(ACCOUNT_ID, 3, date(2026, 3, 28))

        assert second is first
        assert len(repository.calls) == calls_after_first


class TestCustomerGrowth:
    def test_counts_as_of_each_month_end(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [
            make_customer(),
            make_customer(status="churned", churned=date(2026, 2, 10)),
            make_customer(subscribed=date(2026, 3, 10)),
        ]

        growth = engine.get_customer_growth(ACCOUNT_ID, 3, REFERENCE_DATE)

        assert [(g.month, g.total, g.active, g.churned) for g in growth] == [
            ("2026-01", 2, 1, 0),
            ("2026-02", 2, 1, 1),
            ("2026-03", 3, 2, 1),
        ]

    def test_non_positive_months_rejected(self, engine: MetricsEngine) -> None:
        with pytest.raises(ValueError):
            engine.get_customer_growth(ACCOUNT_ID, 0, REFERENCE_DATE)


# ---------------------------------------------------------------------------
# Caching and scoping
# ---------------------------------------------------------------------------


class TestCaching:
    def test_repeat_call_hits_cache(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [make_customer()]
        engine.calculate_mrr(ACCOUNT_ID, REFERENCE_DATE)
        calls = len(repository.calls)

        engine.calculate_mrr(ACCOUNT_ID, REFERENCE_DATE)

        assert len(repository.calls) == calls

    def test_same_month_different_day_shares_entry(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [make_customer()]
        engine.calculate_cac(ACCOUNT_ID, date(2026, 3, 1))
        calls = len(repository.calls)

        engine.calculate_cac(ACCOUNT_ID, date(2026, 3, 31))

        assert len(repository.calls) == calls

    def test_cached_value_survives_data_change_until_cleared(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [make_customer()]
        assert engine.calculate_mrr(ACCOUNT_ID, REFERENCE_DATE).current == pytest.approx(100.0)

        repository.customers.append(make_customer())
        assert engine.calculate_mrr(ACCOUNT_ID, REFERENCE_DATE).current == pytest.approx(100.0)

        engine.clear_cache()
        assert engine.calculate_mrr(ACCOUNT_ID, REFERENCE_DATE).current == pytest.approx(200.0)

    def test_engines_sharing_a_cache_share_results(
        self, repository: FakeSubscriptionRepository, cache: MetricsCache
    ) -> None:
        repository.customers = [make_customer()]
        MetricsEngine(repository, cache).calculate_mrr(ACCOUNT_ID, REFERENCE_DATE)
        calls = len(repository.calls)

        MetricsEngine(repository, cache).calculate_mrr(ACCOUNT_ID, REFERENCE_DATE)

        assert len(repository.calls) == calls


class TestAccountScoping:
    def test_other_accounts_data_is_invisible(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [
            make_customer(price=100.0),
            make_customer(account_id=OTHER_ACCOUNT_ID, price=5000.0),
            make_customer(
                account_id=OTHER_ACCOUNT_ID,
                subscribed=date(2026, 3, 3),
                acquisition_cost=700.0,
            ),
        ]

        snapshot = engine.get_all_metrics(ACCOUNT_ID, REFERENCE_DATE)

        assert snapshot.mrr.current == pytest.approx(100.0)
        assert snapshot.cac.current == 0.0

    def test_results_cached_per_account(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = [
            make_customer(price=100.0),
            make_customer(account_id=OTHER_ACCOUNT_ID, price=40.0),
        ]

        mine = engine.calculate_mrr(ACCOUNT_ID, REFERENCE_DATE)
        theirs = engine.calculate_mrr(OTHER_ACCOUNT_ID, REFERENCE_DATE)

        assert mine.current == pytest.approx(100.0)
        assert theirs.current == pytest.approx(40.0)

    def test_every_query_carries_the_account(
        self, engine: MetricsEngine, repository: FakeSubscriptionRepository
    ) -> None:
        repository.customers = _churn_population()

        engine.get_all_metrics(ACCOUNT_ID, REFERENCE_DATE)
        engine.get_customer_growth(ACCOUNT_ID, 2, REFERENCE_DATE)
        engine.calculate_net_revenue(ACCOUNT_ID, REFERENCE_DATE)

        assert repository.calls
        assert {account for _, account in repository.calls} == {ACCOUNT_ID}

    def test_missing_account_is_rejected(self, engine: MetricsEngine) -> None:
        with pytest.raises(UnscopedQueryError):
            engine.calculate_mrr(None, REFERENCE_DATE)  # type: ignore[arg-type]
