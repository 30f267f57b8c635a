"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class MetricsSettings:
    """
    Runtime settings for the metrics engine and its HTTP surface.
    """

    cache_ttl_seconds: float = 300.0
    max_workers: int = 5
    history_default_months: int = 12
    history_max_months: int = 24


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@lru_cache(maxsize=1)
def get_metrics_settings() -> MetricsSettings:
    """
    Return cached metrics settings from environment variables.
    """

    max_months = max(1, _get_int_env("METRICS_HISTORY_MAX_MONTHS", 24))
    return MetricsSettings(
        cache_ttl_seconds=max(1.0, _get_float_env("METRICS_CACHE_TTL_SECONDS", 300.0)),
        max_workers=max(1, _get_int_env("METRICS_MAX_WORKERS", 5)),
        history_default_months=min(
            max_months,
            max(1, _get_int_env("METRICS_HISTORY_DEFAULT_MONTHS", 12)),
        ),
        history_max_months=max_months,
    )


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """
    Return cached logging settings from LOG_LEVEL / LOG_FORMAT.
    """

    return LoggingSettings(
        level=_get_str_env("LOG_LEVEL", "INFO").upper(),
        format=_get_str_env("LOG_FORMAT", LoggingSettings.format),
    )
