"""Relational query capability for analytics.

``AnalyticsRepositoryProtocol`` is the seam the analytics service depends
on; ``SqlAnalyticsRepository`` implements it with SQLAlchemy 2.0 aggregate
queries. Every method treats "no matching rows" as zero or empty.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Protocol, runtime_checkable

from sqlalchemy import Date, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.analytics.date_ranges import DateRange
from app.features.analytics.timeseries import BucketSum, Granularity
from app.features.data_platform.models import LineItem, Order, SessionMetric


@dataclass(frozen=True)
class OrderTotals:
    """Revenue and order count for a range."""

    revenue: Decimal
    orders: int


@dataclass(frozen=True)
class SessionTotals:
    """Sessions and mean conversion rate (fraction) for a range."""

    sessions: int
    average_conversion_rate: float


@dataclass(frozen=True)
class ProductSales:
    """Aggregated line-item sales for one product title."""

    title: str
    total_quantity: int
    total_sales: Decimal


@dataclass(frozen=True)
class SessionMetricRow:
    """One stored daily session row."""

    date: date
    sessions: int
    conversion_rate: Decimal | None


@runtime_checkable
class AnalyticsRepositoryProtocol(Protocol):
    """Read-only aggregate queries over a store's synced data."""

    async def order_totals(self, store_id: int, date_range: DateRange) -> OrderTotals:
        """Sum and count orders processed in the range."""
        ...

    async def session_totals(self, store_id: int, date_range: DateRange) -> SessionTotals:
        """Sum sessions and average conversion rate over the range."""
        ...

    async def sales_by_bucket(
        self, store_id: int, date_range: DateRange, granularity: Granularity
    ) -> list[BucketSum]:
        """Order revenue grouped by truncated bucket, ascending."""
        ...

    async def top_products(
        self, store_id: int, date_range: DateRange, limit: int
    ) -> list[ProductSales]:
        """Line-item sales grouped by product title, highest sales first."""
        ...

    async def list_session_metrics(
        self, store_id: int, date_range: DateRange | None
    ) -> list[SessionMetricRow]:
        """Stored daily session rows, ascending by date."""
        ...


class SqlAnalyticsRepository:
    """SQLAlchemy implementation of the analytics queries.

    Order timestamps are filtered with a half-open interval covering whole
    days ``[start 00:00, end + 1 day 00:00)`` in UTC; session rows are
    filtered by calendar date.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def order_totals(self, store_id: int, date_range: DateRange) -> OrderTotals:
        stmt = select(
            func.coalesce(func.sum(Order.total_price), 0).label("revenue"),
            func.count(Order.id).label("orders"),
        ).where(
            Order.store_id == store_id,
            Order.processed_at >= date_range.start_datetime,
            Order.processed_at < date_range.end_exclusive_datetime,
        )
        row = (await self.db.execute(stmt)).one()
        return OrderTotals(revenue=Decimal(str(row.revenue or 0)), orders=int(row.orders or 0))

    async def session_totals(self, store_id: int, date_range: DateRange) -> SessionTotals:
        stmt = select(
            func.coalesce(func.sum(SessionMetric.sessions), 0).label("sessions"),
            func.avg(SessionMetric.conversion_rate).label("average_conversion_rate"),
        ).where(
            SessionMetric.store_id == store_id,
            SessionMetric.date >= date_range.start,
            SessionMetric.date <= date_range.end,
        )
        row = (await self.db.execute(stmt)).one()
        return SessionTotals(
            sessions=int(row.sessions or 0),
            average_conversion_rate=float(row.average_conversion_rate or 0),
        )

    async def sales_by_bucket(
        self, store_id: int, date_range: DateRange, granularity: Granularity
    ) -> list[BucketSum]:
        # Truncate in UTC so buckets line up with the UTC day bounds above
        bucket = cast(
            func.date_trunc(granularity.value, func.timezone("UTC", Order.processed_at)), Date
        )
        stmt = (
            select(bucket.label("bucket_start"), func.sum(Order.total_price).label("value"))
            .where(
                Order.store_id == store_id,
                Order.processed_at >= date_range.start_datetime,
                Order.processed_at < date_range.end_exclusive_datetime,
            )
            .group_by(bucket)
            .order_by(bucket.asc())
        )
        result = await self.db.execute(stmt)
        return [
            BucketSum(bucket_start=row.bucket_start, value=Decimal(str(row.value or 0)))
            for row in result
        ]

    async def top_products(
        self, store_id: int, date_range: DateRange, limit: int
    ) -> list[ProductSales]:
        total_sales = func.sum(LineItem.quantity * LineItem.price)
        stmt = (
            select(
                LineItem.title.label("title"),
                func.sum(LineItem.quantity).label("total_quantity"),
                total_sales.label("total_sales"),
            )
            .join(Order, LineItem.order_id == Order.id)
            .where(
                Order.store_id == store_id,
                Order.processed_at >= date_range.start_datetime,
                Order.processed_at < date_range.end_exclusive_datetime,
            )
            .group_by(LineItem.title)
            .order_by(total_sales.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [
            ProductSales(
                title=row.title,
                total_quantity=int(row.total_quantity or 0),
                total_sales=Decimal(str(row.total_sales or 0)),
            )
            for row in result
        ]

    async def list_session_metrics(
        self, store_id: int, date_range: DateRange | None
    ) -> list[SessionMetricRow]:
        stmt = select(SessionMetric).where(SessionMetric.store_id == store_id)
        if date_range is not None:
            stmt = stmt.where(
                SessionMetric.date >= date_range.start,
                SessionMetric.date <= date_range.end,
            )
        stmt = stmt.order_by(SessionMetric.date.asc())
        result = await self.db.execute(stmt)
        return [
            SessionMetricRow(
                date=metric.date,
                sessions=metric.sessions,
                conversion_rate=metric.conversion_rate,
            )
            for metric in result.scalars().all()
        ]
