"""Test fixtures for the Shopify module."""

from typing import Any

import pytest


@pytest.fixture
def positional_daily_rows() -> list[list[Any]]:
    """Daily analytics rows as positional arrays."""
    return [
        ["2024-03-01", "120.50", "3", "40.17", "0.025", "120"],
        ["2024-03-02", "0", "0", "0", None, "80"],
    ]


@pytest.fixture
def keyed_daily_rows() -> list[dict[str, Any]]:
    """The same daily analytics rows keyed by column name."""
    return [
        {
            "day": "2024-03-01",
            "total_sales": "120.50",
            "orders": "3",
            "average_order_value": "40.17",
            "conversion_rate": "0.025",
            "sessions": "120",
        },
        {
            "day": "2024-03-02",
            "total_sales": "0",
            "orders": "0",
            "average_order_value": "0",
            "conversion_rate": None,
            "sessions": "80",
        },
    ]
