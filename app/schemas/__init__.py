"""
app/schemas package marker.
"""

from app.schemas.accounts import AccountCreateRequest, AccountResponse
from app.schemas.common import Pagination
from app.schemas.customers import (
    CustomerCreateRequest,
    CustomerListResponse,
    CustomerResponse,
    CustomerSummaryResponse,
    CustomerUpdateRequest,
)
from app.schemas.metrics import (
    CustomerGrowthEntryResponse,
    HistoricalEntryResponse,
    MetricsOverviewResponse,
    MetricsSnapshotResponse,
    MetricValueResponse,
    RefreshResponse,
)
from app.schemas.payments import (
    PaymentCreateRequest,
    PaymentListResponse,
    PaymentResponse,
    PaymentSummaryResponse,
    PaymentUpdateRequest,
)
from app.schemas.plans import (
    PlanCreateRequest,
    PlanListResponse,
    PlanResponse,
    PlanRevenue,
    PlanSummaryResponse,
    PlanUpdateRequest,
)

__all__ = [
    "AccountCreateRequest",
    "AccountResponse",
    "CustomerCreateRequest",
    "CustomerGrowthEntryResponse",
    "CustomerListResponse",
    "CustomerResponse",
    "CustomerSummaryResponse",
    "CustomerUpdateRequest",
    "HistoricalEntryResponse",
    "MetricsOverviewResponse",
    "MetricsSnapshotResponse",
    "MetricValueResponse",
    "Pagination",
    "PaymentCreateRequest",
    "PaymentListResponse",
    "PaymentResponse",
    "PaymentSummaryResponse",
    "PaymentUpdateRequest",
    "PlanCreateRequest",
    "PlanListResponse",
    "PlanResponse",
    "PlanRevenue",
    "PlanSummaryResponse",
    "PlanUpdateRequest",
    "RefreshResponse",
]
