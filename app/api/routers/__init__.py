"""
app/api/routers package marker.
"""

from app.api.routers.account_router import router as account_router
from app.api.routers.customer_router import router as customer_router
from app.api.routers.metrics_router import router as metrics_router
from app.api.routers.payment_router import router as payment_router
from app.api.routers.plan_router import router as plan_router

__all__ = [
    "account_router",
    "customer_router",
    "metrics_router",
    "payment_router",
    "plan_router",
]
