#!/usr/bin/env python
"""List registered stores after checking connectivity and schema.

Usage:
    uv run python scripts/list_stores.py
"""

import asyncio
import sys

from sqlalchemy import func, inspect, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine

from app.core.config import get_settings
from app.features.data_platform.models import Order, SessionMetric, Store

REQUIRED_TABLES = (
    "store",
    "order",
    "line_item",
    "product",
    "session_metric",
    "daily_metric",
    "product_metric",
    "job",
)


async def check_database() -> int:
    """Verify connectivity and schema, then summarize each store."""
    settings = get_settings()

    print("StoreAnalytics - Database Check")
    print("=" * 45)
    print(f"Database URL: {settings.database_url.split('@')[-1]}")  # Hide credentials
    print()

    engine = create_async_engine(settings.database_url)

    try:
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            assert result.scalar() == 1
            print("[OK] Basic connectivity")

            tables = set(await conn.run_sync(lambda c: inspect(c).get_table_names()))
            missing = [t for t in REQUIRED_TABLES if t not in tables]
            if missing:
                print(f"[WARN] Missing tables: {', '.join(missing)}")
                print("       Run: uv run alembic upgrade head")
                return 1
            print("[OK] Schema present")
            print()

            order_count = (
                select(func.count(Order.id))
                .where(Order.store_id == Store.id)
                .scalar_subquery()
            )
            session_days = (
                select(func.count(SessionMetric.id))
                .where(SessionMetric.store_id == Store.id)
                .scalar_subquery()
            )
            rows = (
                await conn.execute(
                    select(Store.id, Store.name, Store.url, order_count, session_days).order_by(
                        Store.id
                    )
                )
            ).all()

            if not rows:
                print("No stores registered. POST /stores to add one.")
            for store_id, name, url, orders, days in rows:
                print(f"  #{store_id} {name} ({url}): {orders} orders, {days} session days")

        print()
        print("Database check completed successfully!")
        return 0

    except (SQLAlchemyError, OSError) as e:
        print(f"[FAIL] Connection failed: {e}")
        print()
        print("Troubleshooting:")
        print("  1. Ensure Docker is running: docker-compose up -d")
        print("  2. Check DATABASE_URL in .env file")
        print("  3. Verify PostgreSQL container is healthy: docker-compose ps")
        return 1

    finally:
        await engine.dispose()


def main() -> None:
    sys.exit(asyncio.run(check_database()))


if __name__ == "__main__":
    main()
