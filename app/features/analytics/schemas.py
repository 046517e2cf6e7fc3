"""Pydantic schemas for analytics endpoints.

Responses serialize with camelCase keys (``totalRevenue``) for dashboard
clients; Python code uses the snake_case attribute names.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.features.analytics.date_ranges import ComparisonPeriod
from app.features.analytics.timeseries import Granularity


class CamelModel(BaseModel):
    """Base model emitting camelCase keys and accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Store Analytics
# =============================================================================


class ComparisonResult(CamelModel):
    """Percentage change of each metric against the comparison range.

    A zero baseline reports 100 when the current value is positive, else 0.
    """

    total_revenue_change: float = Field(..., description="Revenue change in percent.")
    total_orders_change: float = Field(..., description="Order count change in percent.")
    average_order_value_change: float = Field(..., description="AOV change in percent.")
    total_sessions_change: float = Field(..., description="Sessions change in percent.")
    conversion_rate_change: float = Field(..., description="Conversion rate change in percent.")


class SalesPoint(CamelModel):
    """One bucket of the sales-over-time series."""

    label: str = Field(..., description="Display label, e.g. '5 Mar', '4 - 10 Mar' or 'Mar'.")
    value: float = Field(..., ge=0, description="Revenue in the bucket; 0 when no orders.")
    bucket_start: date = Field(..., description="First calendar day of the bucket.")


class TopProduct(CamelModel):
    """A product ranked by line-item sales."""

    id: str = Field(..., description="Product identifier (the product title).")
    title: str = Field(..., description="Product title.")
    total_sales: float = Field(..., ge=0, description="Sum of quantity x unit price.")
    total_quantity: int = Field(..., ge=0, description="Units sold.")


class StoreAnalyticsResponse(CamelModel):
    """Store analytics for a date range with optional period comparison."""

    total_revenue: float = Field(..., ge=0, description="Sum of order totals.")
    total_orders: int = Field(..., ge=0, description="Number of orders.")
    average_order_value: float = Field(
        ..., ge=0, description="Revenue per order, 2 decimals; 0 without orders."
    )
    total_sessions: int = Field(..., ge=0, description="Sum of daily sessions.")
    conversion_rate: float = Field(
        ..., ge=0, description="Mean daily conversion rate in percent, 2 decimals."
    )
    comparison: ComparisonResult | None = Field(
        None, description="Percentage changes; null when no comparison was requested."
    )
    sales_over_time: list[SalesPoint] = Field(
        default_factory=list, description="Gap-filled revenue series, ascending."
    )
    top_products: list[TopProduct] = Field(
        default_factory=list, description="Best-selling products, highest sales first."
    )
    granularity: Granularity = Field(..., description="Bucket width of sales_over_time.")
    start_date: date = Field(..., description="Start of the primary range (inclusive).")
    end_date: date = Field(..., description="End of the primary range (inclusive).")
    comparison_period: ComparisonPeriod | None = Field(
        None, description="Comparison mode applied, if any."
    )
    comparison_start_date: date | None = Field(None, description="Start of the comparison range.")
    comparison_end_date: date | None = Field(None, description="End of the comparison range.")


# =============================================================================
# Session Metrics
# =============================================================================


class SessionMetricItem(CamelModel):
    """Stored session metrics for one day."""

    date: date
    sessions: int = Field(..., ge=0)
    conversion_rate: float | None = Field(
        None, description="Conversion rate as a fraction; null when unmeasured."
    )


class SessionMetricsResponse(CamelModel):
    """Daily session metrics ordered by date."""

    sessions: list[SessionMetricItem] = Field(default_factory=list)
