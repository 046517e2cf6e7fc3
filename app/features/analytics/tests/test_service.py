"""Tests for the analytics service over a fake repository."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from app.core.config import Settings
from app.core.exceptions import BadRequestError, DatabaseError
from app.features.analytics.date_ranges import ComparisonPeriod, DateRange
from app.features.analytics.repository import (
    AnalyticsRepositoryProtocol,
    OrderTotals,
    ProductSales,
    SessionMetricRow,
    SessionTotals,
)
from app.features.analytics.service import AnalyticsService
from app.features.analytics.timeseries import BucketSum, Granularity

PREVIOUS_RANGE = DateRange(start=date(2024, 2, 19), end=date(2024, 2, 29))


@dataclass
class FakeAnalyticsRepository:
    """In-memory repository keyed by the requested range.

    Ranges without configured totals answer with zeros, like an empty table.
    """

    order_totals_by_range: dict[DateRange, OrderTotals] = field(default_factory=dict)
    session_totals_by_range: dict[DateRange, SessionTotals] = field(default_factory=dict)
    buckets: list[BucketSum] = field(default_factory=list)
    products: list[ProductSales] = field(default_factory=list)
    session_rows: list[SessionMetricRow] = field(default_factory=list)
    calls: list[tuple[str, object]] = field(default_factory=list)

    async def order_totals(self, store_id: int, date_range: DateRange) -> OrderTotals:
        self.calls.append(("order_totals", date_range))
        return self.order_totals_by_range.get(date_range, OrderTotals(Decimal("0"), 0))

    async def session_totals(self, store_id: int, date_range: DateRange) -> SessionTotals:
        self.calls.append(("session_totals", date_range))
        return self.session_totals_by_range.get(date_range, SessionTotals(0, 0.0))

    async def sales_by_bucket(
        self, store_id: int, date_range: DateRange, granularity: Granularity
    ) -> list[BucketSum]:
        self.calls.append(("sales_by_bucket", granularity))
        return list(self.buckets)

    async def top_products(
        self, store_id: int, date_range: DateRange, limit: int
    ) -> list[ProductSales]:
        self.calls.append(("top_products", limit))
        return list(self.products)

    async def list_session_metrics(
        self, store_id: int, date_range: DateRange | None
    ) -> list[SessionMetricRow]:
        self.calls.append(("list_session_metrics", date_range))
        if date_range is None:
            return list(self.session_rows)
        return [r for r in self.session_rows if date_range.start <= r.date <= date_range.end]


@pytest.fixture
def fake_repository() -> FakeAnalyticsRepository:
    """Create an empty fake repository."""
    return FakeAnalyticsRepository()


@pytest.fixture
def analytics_service(
    fake_repository: FakeAnalyticsRepository, analytics_settings: Settings
) -> AnalyticsService:
    """Create analytics service over the fake repository."""
    return AnalyticsService(repository=fake_repository, settings=analytics_settings)


def test_fake_repository_satisfies_protocol() -> None:
    """Test the fake implements the repository protocol."""
    assert isinstance(FakeAnalyticsRepository(), AnalyticsRepositoryProtocol)


class TestComputeSnapshot:
    """Tests for single-range aggregation."""

    async def test_empty_range_is_all_zero(
        self, analytics_service: AnalyticsService, march_range: DateRange
    ) -> None:
        """Test a range without data yields zeros rather than an error."""
        snapshot = await analytics_service.compute_snapshot(1, march_range)

        assert snapshot.revenue == Decimal("0")
        assert snapshot.orders == 0
        assert snapshot.average_order_value == Decimal("0")
        assert snapshot.sessions == 0
        assert snapshot.conversion_rate == 0.0

    async def test_snapshot_uses_totals(
        self,
        analytics_service: AnalyticsService,
        fake_repository: FakeAnalyticsRepository,
        march_range: DateRange,
    ) -> None:
        """Test totals flow into the snapshot with derived AOV."""
        fake_repository.order_totals_by_range[march_range] = OrderTotals(Decimal("500.00"), 4)
        fake_repository.session_totals_by_range[march_range] = SessionTotals(250, 0.032)

        snapshot = await analytics_service.compute_snapshot(1, march_range)

        assert snapshot.revenue == Decimal("500.00")
        assert snapshot.average_order_value == Decimal("125")
        assert snapshot.sessions == 250


class TestRankTopProducts:
    """Tests for top products ranking."""

    async def test_sorted_descending_and_truncated(
        self,
        analytics_service: AnalyticsService,
        fake_repository: FakeAnalyticsRepository,
        march_range: DateRange,
    ) -> None:
        """Test at most five products come back, highest sales first."""
        fake_repository.products = [
            ProductSales(title=f"Product {i}", total_quantity=i, total_sales=Decimal(i * 10))
            for i in range(1, 8)
        ]

        ranked = await analytics_service.rank_top_products(1, march_range)

        assert len(ranked) == 5
        assert [p.title for p in ranked] == [f"Product {i}" for i in range(7, 2, -1)]
        assert ("top_products", 5) in fake_repository.calls

    async def test_ties_keep_repository_order(
        self,
        analytics_service: AnalyticsService,
        fake_repository: FakeAnalyticsRepository,
        march_range: DateRange,
    ) -> None:
        """Test equal sales keep the order they were returned in."""
        fake_repository.products = [
            ProductSales(title="B", total_quantity=1, total_sales=Decimal("10")),
            ProductSales(title="A", total_quantity=2, total_sales=Decimal("10")),
        ]

        ranked = await analytics_service.rank_top_products(1, march_range)

        assert [p.title for p in ranked] == ["B", "A"]


class TestGetStoreAnalytics:
    """Tests for the full analytics computation."""

    async def test_no_data_returns_zeros(self, analytics_service: AnalyticsService) -> None:
        """Test an empty store yields zero metrics, a zero series and no products."""
        result = await analytics_service.get_store_analytics(
            store_id=1, start_date="2024-03-01", end_date="2024-03-10"
        )

        assert result.total_revenue == 0
        assert result.total_orders == 0
        assert result.average_order_value == 0
        assert result.conversion_rate == 0
        assert result.comparison is None
        assert result.granularity == Granularity.DAY
        assert len(result.sales_over_time) == 10
        assert all(point.value == 0 for point in result.sales_over_time)
        assert result.top_products == []

    async def test_previous_period_comparison(
        self,
        analytics_service: AnalyticsService,
        fake_repository: FakeAnalyticsRepository,
        march_range: DateRange,
    ) -> None:
        """Test comparison uses the previous window and reports percent changes."""
        fake_repository.order_totals_by_range[march_range] = OrderTotals(Decimal("150.00"), 3)
        fake_repository.order_totals_by_range[PREVIOUS_RANGE] = OrderTotals(Decimal("100.00"), 2)
        fake_repository.session_totals_by_range[march_range] = SessionTotals(100, 0.03)

        result = await analytics_service.get_store_analytics(
            store_id=1,
            start_date="2024-03-01",
            end_date="2024-03-10",
            comparison_period=ComparisonPeriod.PREVIOUS_PERIOD,
        )

        assert result.comparison is not None
        assert result.comparison.total_revenue_change == pytest.approx(50.0)
        assert result.comparison.total_orders_change == pytest.approx(50.0)
        assert result.comparison.average_order_value_change == pytest.approx(0.0)
        assert result.comparison.total_sessions_change == 100.0
        assert result.comparison_start_date == date(2024, 2, 19)
        assert result.comparison_end_date == date(2024, 2, 29)
        assert result.comparison_period == ComparisonPeriod.PREVIOUS_PERIOD

    async def test_none_comparison_skips_comparison_queries(
        self,
        analytics_service: AnalyticsService,
        fake_repository: FakeAnalyticsRepository,
    ) -> None:
        """Test comparison 'none' produces no comparison block."""
        result = await analytics_service.get_store_analytics(
            store_id=1,
            start_date="2024-03-01",
            end_date="2024-03-10",
            comparison_period="none",
        )

        assert result.comparison is None
        assert result.comparison_period is None
        order_calls = [c for c in fake_repository.calls if c[0] == "order_totals"]
        assert len(order_calls) == 1

    async def test_rounding_and_percent_conversion(
        self,
        analytics_service: AnalyticsService,
        fake_repository: FakeAnalyticsRepository,
        march_range: DateRange,
    ) -> None:
        """Test AOV rounds to 2 decimals and conversion is reported in percent."""
        fake_repository.order_totals_by_range[march_range] = OrderTotals(Decimal("100.00"), 3)
        fake_repository.session_totals_by_range[march_range] = SessionTotals(300, 0.012345)

        result = await analytics_service.get_store_analytics(
            store_id=1, start_date="2024-03-01", end_date="2024-03-10"
        )

        assert result.average_order_value == 33.33
        assert result.conversion_rate == 1.23

    async def test_sales_series_filled_from_buckets(
        self,
        analytics_service: AnalyticsService,
        fake_repository: FakeAnalyticsRepository,
    ) -> None:
        """Test bucket sums land on matching boundaries."""
        fake_repository.buckets = [BucketSum(date(2024, 3, 5), Decimal("42.00"))]

        result = await analytics_service.get_store_analytics(
            store_id=1, start_date="2024-03-01", end_date="2024-03-10"
        )

        point = result.sales_over_time[4]
        assert point.label == "5 Mar"
        assert point.value == 42.0

    async def test_serializes_camel_case(self, analytics_service: AnalyticsService) -> None:
        """Test the response dumps camelCase keys by alias."""
        result = await analytics_service.get_store_analytics(
            store_id=1, start_date="2024-03-01", end_date="2024-03-10"
        )

        payload = result.model_dump(by_alias=True)
        assert "totalRevenue" in payload
        assert "salesOverTime" in payload
        assert "topProducts" in payload

    async def test_inverted_range_raises_before_querying(
        self,
        analytics_service: AnalyticsService,
        fake_repository: FakeAnalyticsRepository,
    ) -> None:
        """Test a start after end is rejected with no queries issued."""
        with pytest.raises(BadRequestError):
            await analytics_service.get_store_analytics(
                store_id=1, start_date="2024-03-10", end_date="2024-03-01"
            )

        assert fake_repository.calls == []

    async def test_database_failure_wrapped(self, march_range: DateRange) -> None:
        """Test SQLAlchemy errors surface as DatabaseError with context."""
        repository = AsyncMock()
        repository.order_totals.side_effect = OperationalError("SELECT 1", {}, Exception("down"))
        service = AnalyticsService(repository=repository)

        with pytest.raises(DatabaseError) as exc_info:
            await service.get_store_analytics(
                store_id=7, start_date="2024-03-01", end_date="2024-03-10"
            )

        assert exc_info.value.details == {"store_id": 7, "operation": "order_totals"}


class TestGetSessionMetrics:
    """Tests for session metric listing."""

    @pytest.fixture
    def session_rows(self, fake_repository: FakeAnalyticsRepository) -> None:
        fake_repository.session_rows = [
            SessionMetricRow(date(2024, 3, 1), 100, Decimal("0.0250")),
            SessionMetricRow(date(2024, 3, 2), 80, None),
            SessionMetricRow(date(2024, 3, 3), 120, Decimal("0.0300")),
        ]

    @pytest.mark.usefixtures("session_rows")
    async def test_unfiltered_without_both_bounds(
        self,
        analytics_service: AnalyticsService,
        fake_repository: FakeAnalyticsRepository,
    ) -> None:
        """Test a single bound does not filter."""
        result = await analytics_service.get_session_metrics(1, start_date="2024-03-02")

        assert len(result.sessions) == 3
        assert ("list_session_metrics", None) in fake_repository.calls

    @pytest.mark.usefixtures("session_rows")
    async def test_filtered_with_both_bounds(self, analytics_service: AnalyticsService) -> None:
        """Test both bounds filter inclusively."""
        result = await analytics_service.get_session_metrics(
            1, start_date="2024-03-02", end_date="2024-03-03"
        )

        assert [item.date for item in result.sessions] == [date(2024, 3, 2), date(2024, 3, 3)]

    @pytest.mark.usefixtures("session_rows")
    async def test_unmeasured_conversion_is_null(
        self, analytics_service: AnalyticsService
    ) -> None:
        """Test a missing conversion rate stays None."""
        result = await analytics_service.get_session_metrics(1)

        assert result.sessions[0].conversion_rate == 0.025
        assert result.sessions[1].conversion_rate is None

    async def test_inverted_range_raises(
        self,
        analytics_service: AnalyticsService,
        fake_repository: FakeAnalyticsRepository,
    ) -> None:
        """Test start after end is rejected as it is for store analytics."""
        with pytest.raises(BadRequestError):
            await analytics_service.get_session_metrics(
                1, start_date="2024-03-10", end_date="2024-03-01"
            )

        assert fake_repository.calls == []
