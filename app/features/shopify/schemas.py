"""Typed records for data pulled from the Shopify Admin API.

``NormalizedAnalyticsRow`` and ``NormalizedProductRow`` are produced by the
ShopifyQL result parser. ``ShopifyOrder`` and ``ShopifyProduct`` validate the
REST payloads consumed by the store sync; unknown fields are ignored.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Column order as declared in the ShopifyQL SHOW clauses; positional rows
# follow this order (grouping keys first).
DAILY_ANALYTICS_COLUMNS: tuple[str, ...] = (
    "day",
    "total_sales",
    "orders",
    "average_order_value",
    "conversion_rate",
    "sessions",
)

PRODUCT_ANALYTICS_COLUMNS: tuple[str, ...] = (
    "day",
    "product_title",
    "total_sales",
    "net_sales",
    "net_items_sold",
)


# =============================================================================
# ShopifyQL Records
# =============================================================================


class NormalizedAnalyticsRow(BaseModel):
    """One day of store-level analytics."""

    model_config = ConfigDict(frozen=True)

    date: date
    total_sales: Decimal = Decimal("0")
    orders: int = 0
    average_order_value: Decimal = Decimal("0")
    conversion_rate: Decimal = Decimal("0")
    sessions: int = 0


class NormalizedProductRow(BaseModel):
    """One day of sales for one product title."""

    model_config = ConfigDict(frozen=True)

    date: date
    product_title: str
    total_sales: Decimal = Decimal("0")
    net_sales: Decimal = Decimal("0")
    net_items_sold: int = 0


# =============================================================================
# REST Payloads
# =============================================================================


class ShopifyLineItem(BaseModel):
    """Line item embedded in a REST order."""

    model_config = ConfigDict(extra="ignore")

    title: str = ""
    quantity: int = Field(0, ge=0)
    price: Decimal = Field(Decimal("0"), ge=0)


class ShopifyOrder(BaseModel):
    """Order from ``orders.json``."""

    model_config = ConfigDict(extra="ignore")

    id: int
    total_price: Decimal = Field(Decimal("0"), ge=0)
    processed_at: datetime | None = None
    created_at: datetime | None = None
    line_items: list[ShopifyLineItem] = Field(default_factory=list)

    @property
    def effective_processed_at(self) -> datetime | None:
        """Processing time, falling back to creation time."""
        return self.processed_at or self.created_at


class ShopifyProduct(BaseModel):
    """Product from ``products.json``."""

    model_config = ConfigDict(extra="ignore")

    id: int
    title: str = ""
    handle: str | None = None
    status: str | None = None
    image: str | None = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("image", mode="before")
    @classmethod
    def image_src(cls, v: Any) -> Any:
        """REST returns the image as an object; keep its ``src``."""
        if isinstance(v, dict):
            return v.get("src")
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v: Any) -> Any:
        """REST returns tags as one comma-separated string."""
        if v is None:
            return []
        if isinstance(v, str):
            return [tag.strip() for tag in v.split(",") if tag.strip()]
        return v
