"""Normalization of ShopifyQL ``shopifyqlQuery`` results.

ShopifyQL returns ``tableData.rows`` either as positional arrays (grouping
keys first, then the SHOW columns in declared order) or as objects keyed by
column name, depending on API version. Each row is classified once and
resolved to a mapping keyed by the declared column names before typed
records are built from it.

Failure handling:
- ``undefinedField`` GraphQL errors mean the account or API version lacks
  ShopifyQL; the result is an empty row set, not an error.
- Non-empty ``parseErrors`` raise ``ShopifyQLError``.
- Missing ``tableData`` or ``rows`` yields an empty row set.
"""

import json
from collections.abc import Callable, Mapping, Sequence
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar

from app.core.exceptions import ExternalServiceError, ShopifyQLError
from app.core.logging import get_logger
from app.features.shopify.schemas import (
    DAILY_ANALYTICS_COLUMNS,
    PRODUCT_ANALYTICS_COLUMNS,
    NormalizedAnalyticsRow,
    NormalizedProductRow,
)

logger = get_logger(__name__)

UNDEFINED_FIELD_CODE = "undefinedField"

# Count columns are 32-bit integers.
MAX_COUNT = 2**31 - 1
MAX_COUNT_DIGITS = 9

R = TypeVar("R")


class RowShape(str, Enum):
    """Wire shape of a ShopifyQL row."""

    POSITIONAL = "positional"
    KEYED = "keyed"


def classify_row(row: Any) -> RowShape | None:
    """Classify a row as positional or keyed; None for anything else."""
    if isinstance(row, list | tuple):
        return RowShape.POSITIONAL
    if isinstance(row, Mapping):
        return RowShape.KEYED
    return None


def resolve_row(row: Any, columns: Sequence[str]) -> dict[str, Any] | None:
    """Resolve a row to a mapping keyed by the declared column names.

    Positional rows shorter than ``columns`` leave the missing columns as None.

    Returns:
        Column mapping, or None if the row has neither supported shape.
    """
    shape = classify_row(row)
    if shape == RowShape.POSITIONAL:
        return {name: row[i] if i < len(row) else None for i, name in enumerate(columns)}
    if shape == RowShape.KEYED:
        return {name: row.get(name) for name in columns}
    return None


def parse_decimal(value: Any) -> Decimal:
    """Parse a money or ratio value; missing or unparseable values become 0."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation:
        return Decimal("0")
    return result if result.is_finite() else Decimal("0")


def parse_int(value: Any) -> int:
    """Parse a count; fractional input is truncated, bad input becomes 0.

    Counts beyond a 32-bit integer column are treated as bad input. The
    exponent is checked before conversion so huge exponents are never expanded.
    """
    parsed = parse_decimal(value)
    if parsed.adjusted() > MAX_COUNT_DIGITS:
        return 0
    count = int(parsed)
    return count if abs(count) <= MAX_COUNT else 0


def parse_day(value: Any) -> date | None:
    """Parse the ``day`` grouping key (ISO date or timestamp)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def is_undefined_field_error(errors: Any) -> bool:
    """True when any GraphQL error has ``extensions.code == "undefinedField"``."""
    if not isinstance(errors, list):
        return False
    for error in errors:
        if not isinstance(error, Mapping):
            continue
        extensions = error.get("extensions") or {}
        if isinstance(extensions, Mapping) and extensions.get("code") == UNDEFINED_FIELD_CODE:
            return True
    return False


def extract_parse_error_message(error: Any) -> str:
    """Text of one ``parseErrors`` entry.

    Strings are used as-is; objects use their ``message``, else their JSON.
    """
    if isinstance(error, str):
        return error
    if isinstance(error, Mapping) and error.get("message"):
        return str(error["message"])
    return json.dumps(error, default=str)


class ShopifyQLResultParser:
    """Turns ``shopifyqlQuery`` payloads into typed records.

    Accepts either a full GraphQL response body (``{"data": ..., "errors": ...}``)
    or its ``data`` member.
    """

    def extract_rows(
        self, payload: Mapping[str, Any], columns: Sequence[str]
    ) -> list[dict[str, Any]]:
        """Return the rows of a payload resolved against ``columns``.

        Raises:
            ShopifyQLError: If the query reported parse errors.
            ExternalServiceError: If the response carries other GraphQL errors.
        """
        errors = payload.get("errors")
        if errors:
            if is_undefined_field_error(errors):
                logger.warning(
                    "shopify.shopifyql_unsupported",
                    error=extract_parse_error_message(errors[0]),
                )
                return []
            raise ExternalServiceError(
                message=f"GraphQL error: {extract_parse_error_message(errors[0])}",
                details={"operation": "shopifyql", "errors": errors},
            )

        data = payload.get("data", payload) or {}
        query_result = data.get("shopifyqlQuery") or {}

        parse_errors = query_result.get("parseErrors") or []
        if parse_errors:
            message = extract_parse_error_message(parse_errors[0])
            logger.error("shopify.shopifyql_parse_errors", errors=parse_errors)
            raise ShopifyQLError(
                message=f"ShopifyQL error: {message}",
                details={"operation": "shopifyql", "parse_errors": parse_errors},
            )

        table_data = query_result.get("tableData") or {}
        rows = table_data.get("rows")
        if not rows:
            logger.warning("shopify.shopifyql_no_rows")
            return []

        resolved: list[dict[str, Any]] = []
        for index, row in enumerate(rows):
            mapping = resolve_row(row, columns)
            if mapping is None:
                logger.warning(
                    "shopify.shopifyql_row_skipped",
                    index=index,
                    row_type=type(row).__name__,
                )
                continue
            resolved.append(mapping)
        return resolved

    def parse_daily_analytics(self, payload: Mapping[str, Any]) -> list[NormalizedAnalyticsRow]:
        """Parse a daily analytics result."""
        return self._build(payload, DAILY_ANALYTICS_COLUMNS, _analytics_row)

    def parse_product_analytics(self, payload: Mapping[str, Any]) -> list[NormalizedProductRow]:
        """Parse a per-product analytics result."""
        return self._build(payload, PRODUCT_ANALYTICS_COLUMNS, _product_row)

    def _build(
        self,
        payload: Mapping[str, Any],
        columns: Sequence[str],
        factory: Callable[[dict[str, Any]], R | None],
    ) -> list[R]:
        records: list[R] = []
        for mapping in self.extract_rows(payload, columns):
            record = factory(mapping)
            if record is None:
                logger.warning("shopify.shopifyql_row_without_day", row=mapping)
                continue
            records.append(record)
        logger.info("shopify.shopifyql_rows_parsed", columns=len(columns), rows=len(records))
        return records


def _analytics_row(mapping: dict[str, Any]) -> NormalizedAnalyticsRow | None:
    day = parse_day(mapping["day"])
    if day is None:
        return None
    return NormalizedAnalyticsRow(
        date=day,
        total_sales=parse_decimal(mapping["total_sales"]),
        orders=parse_int(mapping["orders"]),
        average_order_value=parse_decimal(mapping["average_order_value"]),
        conversion_rate=parse_decimal(mapping["conversion_rate"]),
        sessions=parse_int(mapping["sessions"]),
    )


def _product_row(mapping: dict[str, Any]) -> NormalizedProductRow | None:
    day = parse_day(mapping["day"])
    if day is None:
        return None
    return NormalizedProductRow(
        date=day,
        product_title=str(mapping["product_title"] or ""),
        total_sales=parse_decimal(mapping["total_sales"]),
        net_sales=parse_decimal(mapping["net_sales"]),
        net_items_sold=parse_int(mapping["net_items_sold"]),
    )
