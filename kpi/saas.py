"""
kpi/saas.py

SaaS metric formulas.

Formulas
--------
Monthly price  = plan price / cycle divisor   (monthly 1, quarterly 3, yearly 12)
Annual price   = plan price * cycle multiplier (monthly 12, quarterly 4, yearly 1)
MRR            = sum(monthly price of active customers)
ARR            = MRR * 12
Churn Rate (%) = churned_in_month / customers_at_start * 100
ARPU           = sum(monthly prices) / number of active customers
LTV            = ARPU / (churn_rate_percent / 100)
CAC            = sum(acquisition costs) / number of new customers
Growth (%)     = (current - previous) / previous * 100

Every division-by-zero case returns 0.0. Sparse accounts (no customers, no
churn history) degrade to zero instead of raising.

No I/O, no logging, no side effects.
"""

from __future__ import annotations

from collections.abc import Iterable

MONTHS_PER_YEAR = 12


class BillingCycle:
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


_MONTHLY_DIVISOR: dict[str, int] = {
    BillingCycle.MONTHLY: 1,
    BillingCycle.QUARTERLY: 3,
    BillingCycle.YEARLY: 12,
}

_ANNUAL_MULTIPLIER: dict[str, int] = {
    BillingCycle.MONTHLY: 12,
    BillingCycle.QUARTERLY: 4,
    BillingCycle.YEARLY: 1,
}


def monthly_price(price: float, billing_cycle: str) -> float:
    """
    Normalise a plan price to one month.

    Unknown cycles are treated as monthly.
    """
    return price / _MONTHLY_DIVISOR.get(billing_cycle, 1)


def annual_price(price: float, billing_cycle: str) -> float:
    """Normalise a plan price to one year. Unknown cycles are treated as yearly."""
    return price * _ANNUAL_MULTIPLIER.get(billing_cycle, 1)


def recurring_revenue(monthly_prices: Iterable[float]) -> float:
    """MRR = sum of normalised monthly prices."""
    return float(sum(monthly_prices, 0.0))


def annualize(mrr: float) -> float:
    return mrr * MONTHS_PER_YEAR


def growth_percentage(current: float, previous: float) -> float:
    """
    Period-over-period growth in percent.

    Returns 0.0 when *previous* is zero. This is a reporting policy, not a
    mathematical identity: growth from nothing is shown as flat.
    """
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def churn_rate_percent(churned: int, customers_at_start: int) -> float:
    """
    Churn Rate = churned / customers_at_start * 100.

    Returns 0.0 when customers_at_start is zero.
    """
    if customers_at_start == 0:
        return 0.0
    return churned / customers_at_start * 100


def average_revenue_per_user(monthly_prices: Iterable[float]) -> float:
    """ARPU over the given customers; 0.0 for an empty population."""
    prices = list(monthly_prices)
    if not prices:
        return 0.0
    return sum(prices) / len(prices)


def lifetime_value(arpu: float, churn_rate_pct: float) -> float:
    """
    LTV = ARPU / monthly churn fraction.

    Returns 0.0 when the churn fraction is not positive (no churn history
    would otherwise imply an infinite lifetime).
    """
    monthly_churn = churn_rate_pct / 100
    if monthly_churn <= 0:
        return 0.0
    return arpu / monthly_churn


def acquisition_cost(costs: Iterable[float | None]) -> float:
    """
    CAC = total acquisition spend / number of new customers.

    A missing cost counts as 0. Returns 0.0 when there are no new customers.
    """
    values = [cost or 0.0 for cost in costs]
    if not values:
        return 0.0
    return sum(values) / len(values)
