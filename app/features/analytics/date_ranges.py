"""Date range resolution for analytics requests.

Turns optional ISO date strings and a comparison mode into a primary range
and an optional comparison range. All ranges are inclusive calendar-date
ranges; the end date covers the whole day.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from enum import Enum

from app.core.exceptions import BadRequestError

ONE_DAY = timedelta(days=1)


class ComparisonPeriod(str, Enum):
    """Prior period a primary range can be compared against."""

    PREVIOUS_PERIOD = "previous_period"
    LAST_MONTH = "last_month"
    LAST_YEAR = "last_year"
    NONE = "none"


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar-date range."""

    start: date
    end: date

    @property
    def span(self) -> timedelta:
        """Length of the range counting both end days."""
        return self.end - self.start + ONE_DAY

    @property
    def start_datetime(self) -> datetime:
        """Start of the first day (UTC)."""
        return datetime.combine(self.start, datetime.min.time(), tzinfo=UTC)

    @property
    def end_exclusive_datetime(self) -> datetime:
        """Start of the day after the last day (UTC); use as an exclusive bound."""
        return datetime.combine(self.end + ONE_DAY, datetime.min.time(), tzinfo=UTC)


@dataclass(frozen=True)
class ResolvedRanges:
    """Primary range plus the optional comparison range."""

    primary: DateRange
    comparison: DateRange | None = None


def parse_date(value: str, field: str) -> date:
    """Parse an ISO date (or datetime) string into a calendar date.

    Args:
        value: ISO 8601 string, e.g. ``2024-03-01`` or ``2024-03-01T10:00:00Z``.
        field: Parameter name used in the error message.

    Returns:
        Parsed calendar date.

    Raises:
        BadRequestError: If the string is not a valid ISO date.
    """
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError as e:
        raise BadRequestError(
            message=f"Invalid {field} '{value}'. Expected an ISO date (YYYY-MM-DD).",
            details={"field": field, "value": value},
        ) from e


def shift_months(value: date, months: int) -> date:
    """Move a date by whole calendar months, rolling over impossible days.

    A day-of-month that does not exist in the target month spills into the
    next month (Mar 31 minus one month is Mar 2 or Mar 3, not Feb 28/29).

    Args:
        value: Date to shift.
        months: Months to add (negative to subtract).

    Returns:
        Shifted date.
    """
    month_index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(month_index, 12)
    return date(year, month + 1, 1) + timedelta(days=value.day - 1)


def resolve_primary_range(
    start_date: str | None,
    end_date: str | None,
    default_days: int = 30,
    today: date | None = None,
) -> DateRange:
    """Resolve the primary analytics range.

    Missing bounds default to ``[today - default_days, today]``.

    Raises:
        BadRequestError: If a bound is unparseable or start is after end.
    """
    today = today or datetime.now(UTC).date()
    start = (
        parse_date(start_date, "start_date")
        if start_date
        else today - timedelta(days=default_days)
    )
    end = parse_date(end_date, "end_date") if end_date else today
    return checked_range(start, end)


def checked_range(start: date, end: date) -> DateRange:
    """Build a range after rejecting inverted or unbounded input.

    The end date must leave room for its exclusive bound (the following day).

    Raises:
        BadRequestError: If start is after end or end is the last representable date.
    """
    if start > end:
        raise BadRequestError(
            message=f"start_date {start.isoformat()} is after end_date {end.isoformat()}",
            details={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )
    if end == date.max:
        raise BadRequestError(
            message=f"end_date {end.isoformat()} is out of range",
            details={"end_date": end.isoformat()},
        )
    return DateRange(start=start, end=end)


def resolve_comparison_range(
    primary: DateRange,
    comparison_period: ComparisonPeriod | str | None,
) -> DateRange | None:
    """Resolve the comparison range for a primary range.

    - previous_period: ``[S - D - 1 day, S - 1 day]`` where D is the primary
      span; the one-day buffer keeps the windows from touching.
    - last_month / last_year: both bounds shifted by one calendar month/year
      (see ``shift_months`` for day rollover).
    - absent, ``none`` or unrecognized: no comparison.

    Raises:
        BadRequestError: If the comparison range falls before the first
            representable date.
    """
    if comparison_period is None:
        return None
    try:
        period = ComparisonPeriod(comparison_period)
    except ValueError:
        return None

    try:
        return _shifted_range(primary, period)
    except (OverflowError, ValueError) as e:
        raise BadRequestError(
            message=f"No {period.value} comparison exists for a range starting "
            f"{primary.start.isoformat()}",
            details={"start_date": primary.start.isoformat(), "comparison_period": period.value},
        ) from e


def _shifted_range(primary: DateRange, period: ComparisonPeriod) -> DateRange | None:
    if period == ComparisonPeriod.PREVIOUS_PERIOD:
        # D runs to the end of the last primary day, so subtracting it lands
        # on the day before S - span.
        return DateRange(
            start=primary.start - primary.span - ONE_DAY,
            end=primary.start - ONE_DAY,
        )
    if period == ComparisonPeriod.LAST_MONTH:
        return DateRange(start=shift_months(primary.start, -1), end=shift_months(primary.end, -1))
    if period == ComparisonPeriod.LAST_YEAR:
        return DateRange(start=shift_months(primary.start, -12), end=shift_months(primary.end, -12))
    return None


def resolve_ranges(
    start_date: str | None,
    end_date: str | None,
    comparison_period: ComparisonPeriod | str | None = None,
    default_days: int = 30,
    today: date | None = None,
) -> ResolvedRanges:
    """Resolve primary and comparison ranges in one call."""
    primary = resolve_primary_range(start_date, end_date, default_days=default_days, today=today)
    return ResolvedRanges(
        primary=primary,
        comparison=resolve_comparison_range(primary, comparison_period),
    )
