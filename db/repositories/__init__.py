"""
Repository layer exports.
"""

from db.repositories.errors import SubscriptionRepositoryError, UnscopedQueryError
from db.repositories.subscription_repository import SubscriptionRepository
from db.repositories.types import CustomerCriteria, CustomerSnapshot

__all__ = [
    "CustomerCriteria",
    "CustomerSnapshot",
    "SubscriptionRepository",
    "SubscriptionRepositoryError",
    "UnscopedQueryError",
]
