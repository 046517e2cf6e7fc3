"""Fixtures for data platform integration tests.

Note: The db_session fixture is duplicated here because pytest fixtures are discovered
based on conftest.py files in the directory path. Tests in app/features/*/tests/ cannot
see fixtures in tests/conftest.py since it's not in their parent path.
"""

from datetime import UTC, datetime
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import get_settings
from app.core.database import Base
from app.features.data_platform.models import Order, Store


@pytest.fixture
async def db_session():
    """Create async database session for integration tests.

    Creates all tables, provides a session, and drops them afterwards.
    Requires PostgreSQL to be running (docker-compose up -d).
    """
    settings = get_settings()
    engine = create_async_engine(settings.database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def sample_store(db_session: AsyncSession) -> Store:
    """Create a sample store for testing."""
    store = Store(
        name="Test Store",
        url="test-store.myshopify.com",
        access_token="shpat_test",
    )
    db_session.add(store)
    await db_session.commit()
    await db_session.refresh(store)
    return store


@pytest.fixture
async def sample_order(db_session: AsyncSession, sample_store: Store) -> Order:
    """Create a sample order for testing."""
    order = Order(
        store_id=sample_store.id,
        shopify_id="1001",
        total_price=Decimal("49.90"),
        processed_at=datetime(2024, 3, 5, 12, 0, tzinfo=UTC),
    )
    db_session.add(order)
    await db_session.commit()
    await db_session.refresh(order)
    return order
