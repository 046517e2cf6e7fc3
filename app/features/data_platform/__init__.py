"""Data platform feature: the relational read model behind store analytics.

- Store: connected Shopify shop
- Order, LineItem, Product, SessionMetric: raw synced records
- DailyMetric, ProductMetric: ShopifyQL snapshots
"""

from app.features.data_platform.models import (
    DailyMetric,
    LineItem,
    Order,
    Product,
    ProductMetric,
    SessionMetric,
    Store,
)

__all__ = [
    "DailyMetric",
    "LineItem",
    "Order",
    "Product",
    "ProductMetric",
    "SessionMetric",
    "Store",
]
