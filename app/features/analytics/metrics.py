"""Pure metric calculations for store analytics.

Everything here is side-effect free and works on already-aggregated values.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

Number = int | float | Decimal


@dataclass(frozen=True)
class MetricSnapshot:
    """Store metrics for one date range.

    Attributes:
        revenue: Sum of order totals.
        orders: Number of orders.
        average_order_value: revenue / orders, or 0 without orders.
        sessions: Sum of daily sessions.
        conversion_rate: Mean daily conversion rate as a fraction.
    """

    revenue: Decimal
    orders: int
    average_order_value: Decimal
    sessions: int
    conversion_rate: float

    @classmethod
    def build(
        cls,
        revenue: Decimal,
        orders: int,
        sessions: int,
        conversion_rate: float,
    ) -> MetricSnapshot:
        """Build a snapshot deriving the average order value."""
        return cls(
            revenue=revenue,
            orders=orders,
            average_order_value=average_order_value(revenue, orders),
            sessions=sessions,
            conversion_rate=conversion_rate,
        )


@dataclass(frozen=True)
class MetricChanges:
    """Percentage change per metric between two snapshots."""

    revenue: float
    orders: float
    average_order_value: float
    sessions: float
    conversion_rate: float


def average_order_value(revenue: Decimal, orders: int) -> Decimal:
    """Revenue per order; zero when there are no orders."""
    if orders <= 0:
        return Decimal("0")
    return revenue / orders


def percent_change(current: Number | None, previous: Number | None) -> float:
    """Percentage change from ``previous`` to ``current``.

    A zero or missing baseline yields 100 when current is positive, else 0.

    Examples:
        >>> percent_change(150, 100)
        50.0
        >>> percent_change(5, 0)
        100.0
    """
    current_value = float(current or 0)
    if not previous:
        return 100.0 if current_value > 0 else 0.0
    previous_value = float(previous)
    return (current_value - previous_value) / previous_value * 100


def compare_snapshots(current: MetricSnapshot, previous: MetricSnapshot) -> MetricChanges:
    """Apply ``percent_change`` to every metric independently."""
    return MetricChanges(
        revenue=percent_change(current.revenue, previous.revenue),
        orders=percent_change(current.orders, previous.orders),
        average_order_value=percent_change(
            current.average_order_value, previous.average_order_value
        ),
        sessions=percent_change(current.sessions, previous.sessions),
        conversion_rate=percent_change(current.conversion_rate, previous.conversion_rate),
    )
