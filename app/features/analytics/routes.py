"""API routes for store analytics endpoints.

These endpoints compute dashboard metrics (revenue, orders, AOV, sessions,
conversion) for a store over a date range, with an optional comparison
period, a sales-over-time series and the best-selling products.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.logging import get_logger, store_id_ctx
from app.features.analytics.date_ranges import ComparisonPeriod
from app.features.analytics.repository import SqlAnalyticsRepository
from app.features.analytics.schemas import SessionMetricsResponse, StoreAnalyticsResponse
from app.features.analytics.service import AnalyticsService

logger = get_logger(__name__)

router = APIRouter(prefix="/analytics", tags=["analytics"])


def get_analytics_service(db: AsyncSession = Depends(get_db)) -> AnalyticsService:
    """Build the analytics service over the request's database session."""
    return AnalyticsService(repository=SqlAnalyticsRepository(db))


# =============================================================================
# Store Analytics
# =============================================================================


@router.get(
    "/{store_id}",
    response_model=StoreAnalyticsResponse,
    response_model_by_alias=True,
    summary="Compute store analytics",
    description="""
Compute dashboard metrics for a store over a date range.

**Metrics Computed**:
- `totalRevenue`: Sum of order totals
- `totalOrders`: Number of orders
- `averageOrderValue`: totalRevenue / totalOrders (0 without orders)
- `totalSessions`: Sum of daily sessions
- `conversionRate`: Mean daily conversion rate, in percent

**Date Range**:
- Both `startDate` and `endDate` are inclusive (YYYY-MM-DD)
- Defaults: the last 30 days ending today

**Comparison Periods**:
- `previous_period`: The window of equal length ending the day before `startDate`
- `last_month`: Both bounds shifted back one calendar month
- `last_year`: Both bounds shifted back one calendar year
- `none` (or omitted): No comparison block

**Sales Over Time**:
Daily buckets up to 14 days, weekly (Monday-aligned) up to 60 days,
monthly beyond. Buckets without orders report 0.

**Example Use Cases**:
1. Last 30 days: `GET /analytics/1`
2. March vs previous period: `GET /analytics/1?startDate=2024-03-01&endDate=2024-03-31&comparisonPeriod=previous_period`
""",
)
async def get_store_analytics(
    store_id: int,
    start_date: str | None = Query(
        None,
        alias="startDate",
        description="Start of the range (inclusive). Format: YYYY-MM-DD.",
    ),
    end_date: str | None = Query(
        None,
        alias="endDate",
        description="End of the range (inclusive). Format: YYYY-MM-DD.",
    ),
    comparison_period: ComparisonPeriod | None = Query(
        None,
        alias="comparisonPeriod",
        description="previous_period, last_month, last_year or none.",
    ),
    service: AnalyticsService = Depends(get_analytics_service),
) -> StoreAnalyticsResponse:
    """Compute store analytics for a date range.

    Args:
        store_id: Store to analyse.
        start_date: Start of the range (optional).
        end_date: End of the range (optional).
        comparison_period: Comparison mode (optional).
        service: Analytics service.

    Returns:
        Metrics, comparison, sales series and top products.
    """
    store_id_ctx.set(store_id)
    return await service.get_store_analytics(
        store_id=store_id,
        start_date=start_date,
        end_date=end_date,
        comparison_period=comparison_period,
    )


# =============================================================================
# Session Metrics
# =============================================================================


@router.get(
    "/{store_id}/sessions",
    response_model=SessionMetricsResponse,
    response_model_by_alias=True,
    summary="List daily session metrics",
    description="""
List the stored daily sessions and conversion rate for a store, ordered by date.

The date filter applies only when both `startDate` and `endDate` are given.
`conversionRate` is a fraction, or null for days where it was not measured.
""",
)
async def get_session_metrics(
    store_id: int,
    start_date: str | None = Query(None, alias="startDate", description="YYYY-MM-DD."),
    end_date: str | None = Query(None, alias="endDate", description="YYYY-MM-DD."),
    service: AnalyticsService = Depends(get_analytics_service),
) -> SessionMetricsResponse:
    """List daily session metrics for a store."""
    store_id_ctx.set(store_id)
    return await service.get_session_metrics(
        store_id=store_id,
        start_date=start_date,
        end_date=end_date,
    )
