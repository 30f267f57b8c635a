"""
Repository-layer exceptions for subscription data reads.
"""

from __future__ import annotations


class SubscriptionRepositoryError(Exception):
    """Base exception for subscription repository failures."""


class UnscopedQueryError(SubscriptionRepositoryError, ValueError):
    """Raised when a query is attempted without an owning account id."""
