"""Service layer for store analytics.

Composes date range resolution, metric snapshots, period comparison, the
sales-over-time series and the top-products ranking over an injected
``AnalyticsRepositoryProtocol``. The service holds no mutable state; every
call recomputes from the repository.
"""

from __future__ import annotations

from collections.abc import Awaitable
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError

from app.core.config import Settings, get_settings
from app.core.exceptions import DatabaseError
from app.core.logging import get_logger
from app.features.analytics.date_ranges import (
    ComparisonPeriod,
    DateRange,
    checked_range,
    parse_date,
    resolve_ranges,
)
from app.features.analytics.metrics import MetricSnapshot, compare_snapshots
from app.features.analytics.repository import AnalyticsRepositoryProtocol, ProductSales
from app.features.analytics.schemas import (
    ComparisonResult,
    SalesPoint,
    SessionMetricItem,
    SessionMetricsResponse,
    StoreAnalyticsResponse,
    TopProduct,
)
from app.features.analytics.timeseries import (
    Granularity,
    TimeSeriesPoint,
    build_series,
    select_granularity,
)

logger = get_logger(__name__)

T = TypeVar("T")


class AnalyticsService:
    """Service for computing store analytics.

    Args:
        repository: Query capability over the synced store data.
        settings: Optional settings override (defaults to cached settings).
    """

    def __init__(
        self,
        repository: AnalyticsRepositoryProtocol,
        settings: Settings | None = None,
    ) -> None:
        self.repository = repository
        self.settings = settings or get_settings()

    # -------------------------------------------------------------------------
    # Building blocks
    # -------------------------------------------------------------------------

    async def compute_snapshot(self, store_id: int, date_range: DateRange) -> MetricSnapshot:
        """Aggregate revenue, orders, sessions and conversion for one range.

        Args:
            store_id: Store to aggregate.
            date_range: Inclusive range.

        Returns:
            Snapshot with derived average order value.
        """
        order_totals = await self._query(
            self.repository.order_totals(store_id, date_range), store_id, "order_totals"
        )
        session_totals = await self._query(
            self.repository.session_totals(store_id, date_range), store_id, "session_totals"
        )
        return MetricSnapshot.build(
            revenue=order_totals.revenue,
            orders=order_totals.orders,
            sessions=session_totals.sessions,
            conversion_rate=session_totals.average_conversion_rate,
        )

    async def build_sales_over_time(
        self, store_id: int, date_range: DateRange
    ) -> tuple[Granularity, list[TimeSeriesPoint]]:
        """Bucket order revenue over the range and fill empty buckets with 0."""
        granularity = select_granularity(
            date_range,
            day_max_days=self.settings.analytics_day_granularity_max_days,
            week_max_days=self.settings.analytics_week_granularity_max_days,
        )
        bucket_sums = await self._query(
            self.repository.sales_by_bucket(store_id, date_range, granularity),
            store_id,
            "sales_by_bucket",
        )
        return granularity, build_series(date_range, granularity, bucket_sums)

    async def rank_top_products(self, store_id: int, date_range: DateRange) -> list[ProductSales]:
        """Best-selling products by line-item sales.

        Ties keep the order the repository returned them in.
        """
        limit = self.settings.analytics_top_products_limit
        products = await self._query(
            self.repository.top_products(store_id, date_range, limit),
            store_id,
            "top_products",
        )
        return sorted(products, key=lambda p: p.total_sales, reverse=True)[:limit]

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    async def get_store_analytics(
        self,
        store_id: int,
        start_date: str | None = None,
        end_date: str | None = None,
        comparison_period: ComparisonPeriod | str | None = None,
    ) -> StoreAnalyticsResponse:
        """Compute full store analytics.

        Args:
            store_id: Store to analyse.
            start_date: ISO start date (default: 30 days ago).
            end_date: ISO end date (default: today).
            comparison_period: previous_period, last_month, last_year or none.

        Returns:
            Metrics, optional comparison, sales series and top products.

        Raises:
            BadRequestError: If a date is unparseable or the range is inverted.
            DatabaseError: If an aggregate query fails.
        """
        ranges = resolve_ranges(
            start_date,
            end_date,
            comparison_period,
            default_days=self.settings.analytics_default_range_days,
        )
        primary = ranges.primary

        current = await self.compute_snapshot(store_id, primary)
        comparison: ComparisonResult | None = None
        if ranges.comparison is not None:
            previous = await self.compute_snapshot(store_id, ranges.comparison)
            changes = compare_snapshots(current, previous)
            comparison = ComparisonResult(
                total_revenue_change=changes.revenue,
                total_orders_change=changes.orders,
                average_order_value_change=changes.average_order_value,
                total_sessions_change=changes.sessions,
                conversion_rate_change=changes.conversion_rate,
            )

        granularity, series = await self.build_sales_over_time(store_id, primary)
        top_products = await self.rank_top_products(store_id, primary)

        logger.info(
            "analytics.store_analytics_computed",
            store_id=store_id,
            start_date=primary.start.isoformat(),
            end_date=primary.end.isoformat(),
            comparison_period=str(comparison_period) if comparison_period else None,
            has_comparison=comparison is not None,
            granularity=granularity.value,
            points=len(series),
            total_orders=current.orders,
        )

        return StoreAnalyticsResponse(
            total_revenue=float(current.revenue),
            total_orders=current.orders,
            average_order_value=round(float(current.average_order_value), 2),
            total_sessions=current.sessions,
            conversion_rate=round(current.conversion_rate * 100, 2),
            comparison=comparison,
            sales_over_time=[
                SalesPoint(label=p.label, value=p.value, bucket_start=p.bucket_start)
                for p in series
            ],
            top_products=[
                TopProduct(
                    id=p.title,
                    title=p.title,
                    total_sales=float(p.total_sales),
                    total_quantity=p.total_quantity,
                )
                for p in top_products
            ],
            granularity=granularity,
            start_date=primary.start,
            end_date=primary.end,
            comparison_period=ComparisonPeriod(comparison_period)
            if ranges.comparison is not None and comparison_period is not None
            else None,
            comparison_start_date=ranges.comparison.start if ranges.comparison else None,
            comparison_end_date=ranges.comparison.end if ranges.comparison else None,
        )

    async def get_session_metrics(
        self,
        store_id: int,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> SessionMetricsResponse:
        """List stored daily session metrics.

        The date filter applies only when both bounds are given.

        Raises:
            BadRequestError: If a supplied date is unparseable or the range is inverted.
        """
        date_range: DateRange | None = None
        if start_date and end_date:
            date_range = checked_range(
                parse_date(start_date, "start_date"),
                parse_date(end_date, "end_date"),
            )

        rows = await self._query(
            self.repository.list_session_metrics(store_id, date_range),
            store_id,
            "list_session_metrics",
        )

        logger.info(
            "analytics.session_metrics_listed",
            store_id=store_id,
            filtered=date_range is not None,
            count=len(rows),
        )

        return SessionMetricsResponse(
            sessions=[
                SessionMetricItem(
                    date=row.date,
                    sessions=row.sessions,
                    conversion_rate=float(row.conversion_rate)
                    if row.conversion_rate is not None
                    else None,
                )
                for row in rows
            ]
        )

    async def _query(self, awaitable: Awaitable[T], store_id: int, operation: str) -> T:
        """Await a repository call, wrapping database failures with context."""
        try:
            return await awaitable
        except SQLAlchemyError as e:
            logger.error(
                "analytics.query_failed",
                store_id=store_id,
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            raise DatabaseError(
                message=f"Analytics query '{operation}' failed for store {store_id}",
                details={"store_id": store_id, "operation": operation},
            ) from e
