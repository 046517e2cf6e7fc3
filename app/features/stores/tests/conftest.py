"""Test fixtures for stores module."""

from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import get_settings
from app.core.database import Base
from app.features.data_platform.models import Store
from app.features.shopify.schemas import NormalizedAnalyticsRow, NormalizedProductRow
from app.main import app


@pytest.fixture
async def client():
    """Create async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session():
    """Create async database session for integration tests.

    Requires PostgreSQL to be running (docker-compose up -d).
    """
    settings = get_settings()
    engine = create_async_engine(settings.database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def sample_store(db_session: AsyncSession) -> Store:
    """Create a store with a fixed sync window."""
    store = Store(
        name="Sync Store",
        url="https://sync-store.myshopify.com",
        access_token="shpat_sync",
        start_date=date(2024, 3, 1),
        end_date=date(2024, 3, 2),
    )
    db_session.add(store)
    await db_session.commit()
    await db_session.refresh(store)
    return store


@pytest.fixture
def shopify_orders() -> list[dict[str, Any]]:
    """Raw REST orders: two valid, one with a negative total."""
    return [
        {
            "id": 5001,
            "total_price": "50.00",
            "processed_at": "2024-03-01T10:00:00Z",
            "line_items": [
                {"title": "Mug", "quantity": 2, "price": "20.00"},
                {"title": "Sticker", "quantity": 1, "price": "10.00"},
            ],
        },
        {
            "id": 5002,
            "total_price": "100.00",
            "created_at": "2024-03-02T09:00:00Z",
            "processed_at": None,
            "line_items": [{"title": "Shirt", "quantity": 1, "price": "100.00"}],
        },
        {"id": 5003, "total_price": "-1.00", "processed_at": "2024-03-02T09:00:00Z"},
    ]


@pytest.fixture
def shopify_products() -> list[dict[str, Any]]:
    """Raw REST products."""
    return [
        {
            "id": 7001,
            "title": "Mug",
            "handle": "mug",
            "status": "active",
            "image": {"src": "https://cdn.example.com/mug.png"},
            "tags": "kitchen, gift",
        },
        {"id": 7002, "title": "Shirt", "handle": "shirt", "status": "draft", "tags": ""},
    ]


@pytest.fixture
def daily_rows() -> list[NormalizedAnalyticsRow]:
    """Normalized ShopifyQL daily rows, with a duplicate day."""
    return [
        NormalizedAnalyticsRow(
            date=date(2024, 3, 1),
            total_sales=Decimal("50.00"),
            orders=1,
            average_order_value=Decimal("50.00"),
            conversion_rate=Decimal("2.5"),
            sessions=40,
        ),
        NormalizedAnalyticsRow(
            date=date(2024, 3, 2),
            total_sales=Decimal("90.00"),
            orders=1,
            average_order_value=Decimal("90.00"),
            conversion_rate=Decimal("0.01"),
            sessions=100,
        ),
        NormalizedAnalyticsRow(
            date=date(2024, 3, 2),
            total_sales=Decimal("100.00"),
            orders=1,
            average_order_value=Decimal("100.00"),
            conversion_rate=Decimal("0.02"),
            sessions=50,
        ),
    ]


@pytest.fixture
def product_rows() -> list[NormalizedProductRow]:
    """Normalized ShopifyQL product rows."""
    return [
        NormalizedProductRow(
            date=date(2024, 3, 1),
            product_title="Mug",
            total_sales=Decimal("40.00"),
            net_sales=Decimal("38.00"),
            net_items_sold=2,
        ),
        NormalizedProductRow(
            date=date(2024, 3, 2),
            product_title="Shirt",
            total_sales=Decimal("100.00"),
            net_sales=Decimal("100.00"),
            net_items_sold=1,
        ),
    ]


class FakeShopifyClient:
    """Shopify client double serving canned payloads.

    Records the arguments of each call in ``calls``. Set ``fail_on`` to a
    method name and ``error`` to an exception to make that call raise.
    """

    def __init__(
        self,
        orders: list[dict[str, Any]],
        products: list[dict[str, Any]],
        daily: list[NormalizedAnalyticsRow],
        product_rows: list[NormalizedProductRow],
    ) -> None:
        self.orders = orders
        self.products = products
        self.daily = daily
        self.product_rows = product_rows
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.fail_on: str | None = None
        self.error: Exception | None = None
        self.closed = False

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if self.fail_on == name and self.error is not None:
            raise self.error

    async def get_orders(self, store_url: str, token: str) -> list[dict[str, Any]]:
        self._record("get_orders", store_url, token)
        return self.orders

    async def get_products(self, store_url: str, token: str) -> list[dict[str, Any]]:
        self._record("get_products", store_url, token)
        return self.products

    async def get_daily_analytics(
        self, store_url: str, token: str, since: date, until: date
    ) -> list[NormalizedAnalyticsRow]:
        self._record("get_daily_analytics", store_url, token, since, until)
        return self.daily

    async def get_product_analytics(
        self, store_url: str, token: str, since: date, until: date
    ) -> list[NormalizedProductRow]:
        self._record("get_product_analytics", store_url, token, since, until)
        return self.product_rows


@pytest.fixture
def fake_client(shopify_orders, shopify_products, daily_rows, product_rows) -> FakeShopifyClient:
    return FakeShopifyClient(shopify_orders, shopify_products, daily_rows, product_rows)


@pytest.fixture
def client_factory(fake_client: FakeShopifyClient):
    """Factory returning an async context manager around the fake client."""

    @asynccontextmanager
    async def factory():
        try:
            yield fake_client
        finally:
            fake_client.closed = True

    return factory
