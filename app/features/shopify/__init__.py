"""Shopify Admin API integration.

This module fetches orders, products and ShopifyQL analytics from Shopify
and normalizes ShopifyQL results into typed records for the store sync.
"""

from app.features.shopify.client import ShopifyClient, format_store_url
from app.features.shopify.parser import ShopifyQLResultParser
from app.features.shopify.schemas import (
    NormalizedAnalyticsRow,
    NormalizedProductRow,
    ShopifyOrder,
    ShopifyProduct,
)

__all__ = [
    "NormalizedAnalyticsRow",
    "NormalizedProductRow",
    "ShopifyClient",
    "ShopifyOrder",
    "ShopifyProduct",
    "ShopifyQLResultParser",
    "format_store_url",
]
