"""Data platform ORM models for the store analytics read model.

Raw records synced from Shopify:
- Store: a connected shop and its credentials
- Order / LineItem: transactional sales (Order exclusively owns its LineItems)
- Product: catalogue snapshot
- SessionMetric: one row per (store, date) with traffic and conversion

Pre-aggregated ShopifyQL snapshots:
- DailyMetric: one row per (store, date)
- ProductMetric: one row per (store, date, product_title)

The analytics feature only reads these tables.
"""

import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.shared.models import StoreScopedMixin, TimestampMixin

# ============================================================================
# STORE
# ============================================================================


class Store(TimestampMixin, Base):
    """Connected Shopify store.

    Attributes:
        id: Primary key.
        name: Display name.
        url: Shop URL or bare shop name as entered by the user.
        access_token: Admin API access token (never returned by the API).
        start_date: Optional lower bound of the window pulled by sync.
        end_date: Optional upper bound of the window pulled by sync.
    """

    __tablename__ = "store"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    url: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    access_token: Mapped[str] = mapped_column(String(255))
    start_date: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)

    orders: Mapped[list["Order"]] = relationship(
        back_populates="store", cascade="all, delete-orphan", passive_deletes=True
    )
    products: Mapped[list["Product"]] = relationship(
        back_populates="store", cascade="all, delete-orphan", passive_deletes=True
    )
    session_metrics: Mapped[list["SessionMetric"]] = relationship(
        back_populates="store", cascade="all, delete-orphan", passive_deletes=True
    )
    daily_metrics: Mapped[list["DailyMetric"]] = relationship(
        back_populates="store", cascade="all, delete-orphan", passive_deletes=True
    )
    product_metrics: Mapped[list["ProductMetric"]] = relationship(
        back_populates="store", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint(
            "start_date IS NULL OR end_date IS NULL OR end_date >= start_date",
            name="ck_store_valid_sync_window",
        ),
    )


# ============================================================================
# TRANSACTIONAL RECORDS
# ============================================================================


class Order(StoreScopedMixin, TimestampMixin, Base):
    """Shopify order.

    Attributes:
        id: Surrogate primary key.
        store_id: Owning store (FK).
        shopify_id: Shopify order id (unique).
        total_price: Order total in shop currency.
        processed_at: When Shopify processed the order.
    """

    __tablename__ = "order"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    shopify_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    processed_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), index=True)

    store: Mapped["Store"] = relationship(back_populates="orders")
    line_items: Mapped[list["LineItem"]] = relationship(
        back_populates="order", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        # Every analytics query filters by store and processed_at range
        Index("ix_order_store_processed_at", "store_id", "processed_at"),
        CheckConstraint("total_price >= 0", name="ck_order_total_price_positive"),
    )


class LineItem(TimestampMixin, Base):
    """One product line within an order.

    Attributes:
        id: Primary key.
        order_id: Owning order (FK, cascade delete).
        title: Product title at time of sale.
        quantity: Units ordered.
        price: Unit price.
    """

    __tablename__ = "line_item"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("order.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(255), index=True)
    quantity: Mapped[int] = mapped_column(Integer)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2))

    order: Mapped["Order"] = relationship(back_populates="line_items")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_line_item_quantity_positive"),
        CheckConstraint("price >= 0", name="ck_line_item_price_positive"),
    )


class Product(StoreScopedMixin, TimestampMixin, Base):
    """Catalogue snapshot of a Shopify product.

    Attributes:
        id: Primary key.
        store_id: Owning store (FK).
        shopify_id: Shopify product id (unique).
        title: Product title.
        handle: URL handle.
        image: Primary image URL.
        status: Shopify status (active, draft, archived).
        tags: Product tags.
    """

    __tablename__ = "product"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    shopify_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    title: Mapped[str] = mapped_column(String(255))
    handle: Mapped[str | None] = mapped_column(String(255), nullable=True)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    tags: Mapped[list[str]] = mapped_column(ARRAY(String(255)), default=list)

    store: Mapped["Store"] = relationship(back_populates="products")


class SessionMetric(StoreScopedMixin, TimestampMixin, Base):
    """Daily traffic for a store.

    CRITICAL: Grain is (store_id, date). conversion_rate is a fraction in
    [0, 1]; NULL means the store did not report it.
    """

    __tablename__ = "session_metric"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    date: Mapped[datetime.date] = mapped_column(Date, index=True)
    sessions: Mapped[int] = mapped_column(Integer, default=0)
    conversion_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 4), nullable=True)

    store: Mapped["Store"] = relationship(back_populates="session_metrics")

    __table_args__ = (
        UniqueConstraint("store_id", "date", name="uq_session_metric_grain"),
        CheckConstraint("sessions >= 0", name="ck_session_metric_sessions_positive"),
        CheckConstraint(
            "conversion_rate IS NULL OR (conversion_rate >= 0 AND conversion_rate <= 1)",
            name="ck_session_metric_conversion_rate_range",
        ),
    )


# ============================================================================
# SHOPIFYQL SNAPSHOTS
# ============================================================================


class DailyMetric(StoreScopedMixin, TimestampMixin, Base):
    """Daily store totals as reported by ShopifyQL."""

    __tablename__ = "daily_metric"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    date: Mapped[datetime.date] = mapped_column(Date, index=True)
    total_revenue: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    total_orders: Mapped[int] = mapped_column(Integer, default=0)
    sessions: Mapped[int] = mapped_column(Integer, default=0)
    conversion_rate: Mapped[Decimal] = mapped_column(Numeric(10, 4), default=Decimal("0"))
    average_order_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    store: Mapped["Store"] = relationship(back_populates="daily_metrics")

    __table_args__ = (UniqueConstraint("store_id", "date", name="uq_daily_metric_grain"),)


class ProductMetric(StoreScopedMixin, TimestampMixin, Base):
    """Per-product daily sales as reported by ShopifyQL.

    CRITICAL: Grain is (store_id, date, product_title); the unique constraint
    keeps repeated syncs idempotent.
    """

    __tablename__ = "product_metric"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    date: Mapped[datetime.date] = mapped_column(Date, index=True)
    product_title: Mapped[str] = mapped_column(String(255))
    total_sales: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    net_sales: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    net_items_sold: Mapped[int] = mapped_column(Integer, default=0)

    store: Mapped["Store"] = relationship(back_populates="product_metrics")

    __table_args__ = (
        UniqueConstraint(
            "store_id", "date", "product_title", name="uq_product_metric_grain"
        ),
    )
