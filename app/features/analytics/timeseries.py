"""Sales-over-time bucketing and gap filling.

The bucket width is chosen from the range length so a chart shows a
roughly constant number of points: daily up to two weeks, weekly up to
two months, monthly beyond that.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum

from app.features.analytics.date_ranges import DateRange, shift_months

# Fixed English abbreviations; strftime("%b") depends on the process locale.
MONTH_ABBR = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


class Granularity(str, Enum):
    """Bucket width, named after the matching PostgreSQL date_trunc field."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


@dataclass(frozen=True)
class BucketSum:
    """Aggregated sales for one bucket as returned by the query layer."""

    bucket_start: date
    value: Decimal


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One chart point."""

    bucket_start: date
    label: str
    value: float


def select_granularity(
    date_range: DateRange,
    day_max_days: int = 14,
    week_max_days: int = 60,
) -> Granularity:
    """Pick the bucket width for a range.

    Args:
        date_range: Primary range.
        day_max_days: Largest distance (days between start and end) bucketed daily.
        week_max_days: Largest distance bucketed weekly.

    Returns:
        Selected granularity.
    """
    days = abs((date_range.end - date_range.start).days)
    if days <= day_max_days:
        return Granularity.DAY
    if days <= week_max_days:
        return Granularity.WEEK
    return Granularity.MONTH


def align_start(value: date, granularity: Granularity) -> date:
    """Align a date down to the start of its bucket (Monday / 1st of month)."""
    if granularity == Granularity.WEEK:
        return value - timedelta(days=value.weekday())
    if granularity == Granularity.MONTH:
        return value.replace(day=1)
    return value


def next_boundary(value: date, granularity: Granularity) -> date:
    """Advance one bucket."""
    if granularity == Granularity.DAY:
        return value + timedelta(days=1)
    if granularity == Granularity.WEEK:
        return value + timedelta(days=7)
    return shift_months(value, 1)


def iter_boundaries(date_range: DateRange, granularity: Granularity) -> Iterator[date]:
    """Yield bucket start dates from the aligned start through the range end.

    Stops early when the next boundary would fall past the last representable date.
    """
    current = align_start(date_range.start, granularity)
    while current <= date_range.end:
        yield current
        try:
            current = next_boundary(current, granularity)
        except (OverflowError, ValueError):
            return


def format_label(bucket_start: date, granularity: Granularity) -> str:
    """Render a bucket label.

    - day: ``5 Mar``
    - week: ``4 - 10 Mar`` or ``26 Feb - 3 Mar`` across months
    - month: ``Mar``
    """
    start_month = MONTH_ABBR[bucket_start.month - 1]
    if granularity == Granularity.DAY:
        return f"{bucket_start.day} {start_month}"
    if granularity == Granularity.WEEK:
        week_end = bucket_start + timedelta(days=6)
        end_month = MONTH_ABBR[week_end.month - 1]
        if start_month == end_month:
            return f"{bucket_start.day} - {week_end.day} {start_month}"
        return f"{bucket_start.day} {start_month} - {week_end.day} {end_month}"
    return start_month


def build_series(
    date_range: DateRange,
    granularity: Granularity,
    bucket_sums: Iterable[BucketSum],
) -> list[TimeSeriesPoint]:
    """Build a gap-filled series with exactly one point per bucket boundary.

    A query row matches a boundary only when its bucket start date equals the
    boundary date; boundaries without a match get 0.

    Args:
        date_range: Primary range.
        granularity: Bucket width.
        bucket_sums: Sparse sums from the query layer.

    Returns:
        Points ordered by bucket start.
    """
    values: Mapping[date, Decimal] = _first_value_per_bucket(bucket_sums)
    return [
        TimeSeriesPoint(
            bucket_start=boundary,
            label=format_label(boundary, granularity),
            value=float(values.get(boundary, 0)),
        )
        for boundary in iter_boundaries(date_range, granularity)
    ]


def _first_value_per_bucket(bucket_sums: Iterable[BucketSum]) -> dict[date, Decimal]:
    values: dict[date, Decimal] = {}
    for bucket in bucket_sums:
        values.setdefault(bucket.bucket_start, bucket.value)
    return values
