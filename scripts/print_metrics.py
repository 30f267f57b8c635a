"""
Print an account's metrics from the CLI.
"""

from __future__ import annotations

import argparse
import json
import uuid
from datetime import date

from app.config import get_metrics_settings
from app.services.metrics_cache import MetricsCache
from app.services.metrics_engine import MetricsEngine
from db.repositories.subscription_repository import SubscriptionRepository


def main() -> int:
    settings = get_metrics_settings()
    parser = argparse.ArgumentParser(description="Compute SaaS metrics for one account.")
    parser.add_argument("account_id", type=uuid.UUID, help="Owning account id.")
    parser.add_argument(
        "--date",
        dest="as_of",
        type=date.fromisoformat,
        default=None,
        help="Reference date (YYYY-MM-DD). Defaults to today.",
    )
    parser.add_argument(
        "--months",
        type=int,
        default=0,
        help="Also print the historical series for this many months.",
    )
    args = parser.parse_args()

    if args.months < 0 or args.months > settings.history_max_months:
        parser.error(f"--months must be between 0 and {settings.history_max_months}")

    as_of = args.as_of or date.today()
    engine = MetricsEngine(
        SubscriptionRepository(),
        MetricsCache(ttl_seconds=settings.cache_ttl_seconds),
        max_workers=settings.max_workers,
    )

    payload: dict[str, object] = {
        "account_id": str(args.account_id),
        "as_of": as_of.isoformat(),
        "current": engine.get_all_metrics(args.account_id, as_of).to_dict(),
    }
    if args.months:
        payload["historical"] = [
            entry.to_dict() for entry in engine.get_historical_data(args.account_id, args.months, as_of)
        ]
        payload["customer_growth"] = [
            entry.to_dict() for entry in engine.get_customer_growth(args.account_id, args.months, as_of)
        ]
    print(json.dumps(payload, indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
