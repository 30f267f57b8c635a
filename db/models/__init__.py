"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.account import Account
from db.models.customer import Customer, CustomerStatus
from db.models.payment import Payment, PaymentStatus
from db.models.plan import Plan

__all__ = [
    "Account",
    "Customer",
    "CustomerStatus",
    "Payment",
    "PaymentStatus",
    "Plan",
]
