"""Store sync: pull Shopify data into the analytics read model.

Each step is an idempotent upsert keyed on Shopify ids or the metric grain,
so a sync can be re-run at any time.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.exceptions import ExternalServiceError, NotFoundError
from app.core.logging import get_logger
from app.features.data_platform.models import (
    DailyMetric,
    LineItem,
    Order,
    Product,
    ProductMetric,
    SessionMetric,
    Store,
)
from app.features.shopify.client import ShopifyClient
from app.features.shopify.schemas import (
    NormalizedAnalyticsRow,
    NormalizedProductRow,
    ShopifyOrder,
    ShopifyProduct,
)

logger = get_logger(__name__)


@dataclass
class SyncResult:
    """Record counts written by one sync."""

    orders: int = 0
    line_items: int = 0
    products: int = 0
    session_metrics: int = 0
    daily_metrics: int = 0
    product_metrics: int = 0
    skipped_orders: int = 0
    skipped_products: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def sync_window(store: Store, today: date, default_days: int = 30) -> tuple[date, date]:
    """ShopifyQL window for a store: its configured bounds or the last N days."""
    since = store.start_date or today - timedelta(days=default_days)
    until = store.end_date or today
    return since, until


def normalize_conversion_rate(value: Decimal) -> Decimal:
    """Clamp a reported conversion rate to a fraction in [0, 1].

    ShopifyQL reports some conversion rates as percentages; values above 1
    are scaled down.
    """
    if value < 0:
        return Decimal("0")
    if value > 1:
        value = value / 100
    return min(value, Decimal("1"))


class SyncService:
    """Pulls orders, products and ShopifyQL analytics for a store.

    Args:
        client_factory: Builds the Shopify client used for one sync.
        settings: Optional settings override.
    """

    def __init__(
        self,
        client_factory: Callable[[], ShopifyClient] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.client_factory = client_factory or (lambda: ShopifyClient(settings=self.settings))

    async def sync_store(
        self,
        db: AsyncSession,
        store_id: int,
        today: date | None = None,
    ) -> SyncResult:
        """Sync one store.

        Args:
            db: Database session (the caller commits).
            store_id: Store to sync.
            today: Reference date for the default window.

        Returns:
            Counts of records written.

        Raises:
            NotFoundError: If the store does not exist.
            ExternalServiceError: If a Shopify call fails.
        """
        store = await db.get(Store, store_id)
        if store is None:
            raise NotFoundError(
                message=f"Store not found: {store_id}",
                details={"store_id": store_id},
            )

        today = today or datetime.now(UTC).date()
        since, until = sync_window(store, today, self.settings.analytics_default_range_days)
        result = SyncResult()

        logger.info(
            "sync.store_started",
            store_id=store_id,
            since=since.isoformat(),
            until=until.isoformat(),
        )

        async with self.client_factory() as client:
            try:
                raw_orders = await client.get_orders(store.url, store.access_token)
                await self._upsert_orders(db, store.id, raw_orders, result)

                raw_products = await client.get_products(store.url, store.access_token)
                await self._upsert_products(db, store.id, raw_products, result)

                daily_rows = await client.get_daily_analytics(
                    store.url, store.access_token, since, until
                )
                await self._upsert_daily_metrics(db, store.id, daily_rows, result)

                product_rows = await client.get_product_analytics(
                    store.url, store.access_token, since, until
                )
                await self._upsert_product_metrics(db, store.id, product_rows, result)
            except ExternalServiceError as e:
                e.details.setdefault("store_id", store.id)
                raise

        logger.info("sync.store_completed", store_id=store_id, **result.to_dict())
        return result

    # -------------------------------------------------------------------------
    # Upserts
    # -------------------------------------------------------------------------

    async def _upsert_orders(
        self,
        db: AsyncSession,
        store_id: int,
        raw_orders: list[dict[str, Any]],
        result: SyncResult,
    ) -> None:
        for raw in raw_orders:
            try:
                order = ShopifyOrder.model_validate(raw)
            except PydanticValidationError as e:
                result.skipped_orders += 1
                logger.warning(
                    "sync.order_skipped",
                    store_id=store_id,
                    shopify_id=raw.get("id"),
                    error_count=e.error_count(),
                )
                continue

            processed_at = order.effective_processed_at
            if processed_at is None:
                result.skipped_orders += 1
                logger.warning("sync.order_without_timestamp", shopify_id=order.id)
                continue

            insert_stmt = pg_insert(Order).values(
                store_id=store_id,
                shopify_id=str(order.id),
                total_price=order.total_price,
                processed_at=processed_at,
            )
            upsert_stmt = insert_stmt.on_conflict_do_update(
                index_elements=["shopify_id"],
                set_={
                    "store_id": insert_stmt.excluded.store_id,
                    "total_price": insert_stmt.excluded.total_price,
                    "processed_at": insert_stmt.excluded.processed_at,
                    "updated_at": func.now(),
                },
            ).returning(Order.id)
            order_id = (await db.execute(upsert_stmt)).scalar_one()

            # Line items are owned by the order; replace them wholesale
            await db.execute(delete(LineItem).where(LineItem.order_id == order_id))
            if order.line_items:
                await db.execute(
                    pg_insert(LineItem).values(
                        [
                            {
                                "order_id": order_id,
                                "title": item.title,
                                "quantity": item.quantity,
                                "price": item.price,
                            }
                            for item in order.line_items
                        ]
                    )
                )
            result.orders += 1
            result.line_items += len(order.line_items)

    async def _upsert_products(
        self,
        db: AsyncSession,
        store_id: int,
        raw_products: list[dict[str, Any]],
        result: SyncResult,
    ) -> None:
        for raw in raw_products:
            try:
                product = ShopifyProduct.model_validate(raw)
            except PydanticValidationError as e:
                result.skipped_products += 1
                logger.warning(
                    "sync.product_skipped",
                    store_id=store_id,
                    shopify_id=raw.get("id"),
                    error_count=e.error_count(),
                )
                continue

            insert_stmt = pg_insert(Product).values(
                store_id=store_id,
                shopify_id=str(product.id),
                title=product.title,
                handle=product.handle,
                image=product.image,
                status=product.status,
                tags=product.tags,
            )
            await db.execute(
                insert_stmt.on_conflict_do_update(
                    index_elements=["shopify_id"],
                    set_={
                        "store_id": insert_stmt.excluded.store_id,
                        "title": insert_stmt.excluded.title,
                        "handle": insert_stmt.excluded.handle,
                        "image": insert_stmt.excluded.image,
                        "status": insert_stmt.excluded.status,
                        "tags": insert_stmt.excluded.tags,
                        "updated_at": func.now(),
                    },
                )
            )
            result.products += 1

    async def _upsert_daily_metrics(
        self,
        db: AsyncSession,
        store_id: int,
        rows: list[NormalizedAnalyticsRow],
        result: SyncResult,
    ) -> None:
        # ON CONFLICT cannot touch the same grain twice in one statement
        rows = list({row.date: row for row in rows}.values())
        if not rows:
            return

        session_stmt = pg_insert(SessionMetric).values(
            [
                {
                    "store_id": store_id,
                    "date": row.date,
                    "sessions": max(row.sessions, 0),
                    "conversion_rate": normalize_conversion_rate(row.conversion_rate),
                }
                for row in rows
            ]
        )
        await db.execute(
            session_stmt.on_conflict_do_update(
                index_elements=["store_id", "date"],
                set_={
                    "sessions": session_stmt.excluded.sessions,
                    "conversion_rate": session_stmt.excluded.conversion_rate,
                    "updated_at": func.now(),
                },
            )
        )
        result.session_metrics += len(rows)

        daily_stmt = pg_insert(DailyMetric).values(
            [
                {
                    "store_id": store_id,
                    "date": row.date,
                    "total_revenue": row.total_sales,
                    "total_orders": row.orders,
                    "sessions": row.sessions,
                    "conversion_rate": normalize_conversion_rate(row.conversion_rate),
                    "average_order_value": row.average_order_value,
                }
                for row in rows
            ]
        )
        await db.execute(
            daily_stmt.on_conflict_do_update(
                index_elements=["store_id", "date"],
                set_={
                    "total_revenue": daily_stmt.excluded.total_revenue,
                    "total_orders": daily_stmt.excluded.total_orders,
                    "sessions": daily_stmt.excluded.sessions,
                    "conversion_rate": daily_stmt.excluded.conversion_rate,
                    "average_order_value": daily_stmt.excluded.average_order_value,
                    "updated_at": func.now(),
                },
            )
        )
        result.daily_metrics += len(rows)

    async def _upsert_product_metrics(
        self,
        db: AsyncSession,
        store_id: int,
        rows: list[NormalizedProductRow],
        result: SyncResult,
    ) -> None:
        by_grain: dict[tuple[date, str], NormalizedProductRow] = {}
        for row in rows:
            by_grain[(row.date, row.product_title)] = row
        if not by_grain:
            return

        insert_stmt = pg_insert(ProductMetric).values(
            [
                {
                    "store_id": store_id,
                    "date": row.date,
                    "product_title": row.product_title,
                    "total_sales": row.total_sales,
                    "net_sales": row.net_sales,
                    "net_items_sold": row.net_items_sold,
                }
                for row in by_grain.values()
            ]
        )
        await db.execute(
            insert_stmt.on_conflict_do_update(
                index_elements=["store_id", "date", "product_title"],
                set_={
                    "total_sales": insert_stmt.excluded.total_sales,
                    "net_sales": insert_stmt.excluded.net_sales,
                    "net_items_sold": insert_stmt.excluded.net_items_sold,
                    "updated_at": func.now(),
                },
            )
        )
        result.product_metrics += len(by_grain)
