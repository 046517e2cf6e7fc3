"""Analytics module for store dashboard metrics.

This module computes revenue, orders, AOV, sessions and conversion for a
store over a date range, with period comparison, a bucketed sales series
and a top-products ranking.
"""

from app.features.analytics.date_ranges import ComparisonPeriod, DateRange
from app.features.analytics.routes import router
from app.features.analytics.schemas import SessionMetricsResponse, StoreAnalyticsResponse
from app.features.analytics.service import AnalyticsService
from app.features.analytics.timeseries import Granularity

__all__ = [
    "AnalyticsService",
    "ComparisonPeriod",
    "DateRange",
    "Granularity",
    "SessionMetricsResponse",
    "StoreAnalyticsResponse",
    "router",
]
