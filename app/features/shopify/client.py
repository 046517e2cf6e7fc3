"""Async client for the Shopify Admin API.

Wraps ``httpx.AsyncClient`` for the GraphQL endpoint (ShopifyQL analytics)
and the REST endpoints used by the store sync. Every failure surfaces as
``ExternalServiceError`` carrying the store URL and the operation name.
"""

from datetime import date
from types import TracebackType
from typing import Any

import httpx

from app.core.config import Settings, get_settings
from app.core.exceptions import ExternalServiceError
from app.core.logging import get_logger
from app.features.shopify.parser import (
    ShopifyQLResultParser,
    extract_parse_error_message,
    is_undefined_field_error,
)
from app.features.shopify.queries import (
    daily_analytics_shopifyql,
    product_analytics_shopifyql,
    wrap_shopifyql,
)
from app.features.shopify.schemas import NormalizedAnalyticsRow, NormalizedProductRow

logger = get_logger(__name__)


def empty_shopifyql_result() -> dict[str, Any]:
    """Fresh ``data`` member for a ShopifyQL query that returned nothing."""
    return {"shopifyqlQuery": {"tableData": {"rows": []}}}


def format_store_url(store_url: str) -> str:
    """Normalize a store URL to an ``https://`` base URL.

    A bare shop name (no dot) becomes ``https://<name>.myshopify.com``.

    Examples:
        >>> format_store_url("demo")
        'https://demo.myshopify.com'
        >>> format_store_url("shop.example.com")
        'https://shop.example.com'
    """
    url = store_url.strip().rstrip("/")
    without_scheme = url.removeprefix("https://").removeprefix("http://")
    if "." not in without_scheme:
        return f"https://{without_scheme}.myshopify.com"
    return url if url.startswith("http") else f"https://{url}"


class ShopifyClient:
    """Shopify Admin API client.

    Args:
        settings: Optional settings override (defaults to cached settings).
        http_client: Optional pre-built httpx client (tests inject a
            MockTransport-backed client). Clients built here are closed by
            ``aclose``; injected clients are left to their owner.
        parser: Optional ShopifyQL result parser.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        parser: ShopifyQLResultParser | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.parser = parser or ShopifyQLResultParser()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.shopify_timeout_seconds, connect=10.0),
        )

    async def __aenter__(self) -> "ShopifyClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    def api_url(self, store_url: str, path: str) -> str:
        """Versioned Admin API URL for ``path`` (e.g. ``graphql.json``)."""
        base = format_store_url(store_url)
        return f"{base}/admin/api/{self.settings.shopify_api_version}/{path}"

    @staticmethod
    def _headers(access_token: str) -> dict[str, str]:
        return {
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json; charset=utf-8",
            "Accept": "application/json",
        }

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        store_url: str,
        access_token: str,
        path: str,
        operation: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        url = self.api_url(store_url, path)
        details = {"store_url": format_store_url(store_url), "operation": operation}
        try:
            response = await self._client.request(
                method, url, headers=self._headers(access_token), **kwargs
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "shopify.request_failed",
                operation=operation,
                status_code=e.response.status_code,
                store_url=details["store_url"],
            )
            raise ExternalServiceError(
                message=f"Shopify API returned {e.response.status_code} for {operation}",
                details={**details, "status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            logger.error(
                "shopify.request_failed",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
                store_url=details["store_url"],
            )
            raise ExternalServiceError(
                message=f"Shopify API request failed for {operation}: {e}",
                details=details,
            ) from e
        except ValueError as e:
            raise ExternalServiceError(
                message=f"Shopify API returned invalid JSON for {operation}",
                details=details,
            ) from e

        if not isinstance(body, dict):
            raise ExternalServiceError(
                message=f"Unexpected Shopify response shape for {operation}",
                details=details,
            )
        return body

    # -------------------------------------------------------------------------
    # GraphQL / ShopifyQL
    # -------------------------------------------------------------------------

    async def execute_graphql(
        self,
        store_url: str,
        access_token: str,
        query: str,
        operation: str = "graphql",
    ) -> dict[str, Any]:
        """Execute a GraphQL document and return its ``data`` member.

        An ``undefinedField`` error (ShopifyQL unavailable for the store or API
        version) is logged and answered with an empty ``shopifyqlQuery`` result.

        Raises:
            ExternalServiceError: On transport, HTTP or other GraphQL errors.
        """
        body = await self._request(
            "POST", store_url, access_token, "graphql.json", operation, json={"query": query}
        )

        errors = body.get("errors")
        if errors:
            if is_undefined_field_error(errors):
                logger.warning(
                    "shopify.shopifyql_unsupported",
                    operation=operation,
                    error=extract_parse_error_message(errors[0]),
                )
                return empty_shopifyql_result()
            logger.error("shopify.graphql_errors", operation=operation, errors=errors)
            raise ExternalServiceError(
                message=f"GraphQL error in {operation}: {extract_parse_error_message(errors[0])}",
                details={
                    "store_url": format_store_url(store_url),
                    "operation": operation,
                    "errors": errors,
                },
            )

        return body.get("data") or {}

    async def get_daily_analytics(
        self, store_url: str, access_token: str, since: date, until: date
    ) -> list[NormalizedAnalyticsRow]:
        """Daily sales, orders, AOV, conversion and sessions for a window."""
        shopifyql = daily_analytics_shopifyql(since, until)
        logger.info("shopify.shopifyql_query", operation="daily_analytics", query=shopifyql)
        data = await self.execute_graphql(
            store_url,
            access_token,
            wrap_shopifyql("getDailyAnalytics", shopifyql),
            operation="daily_analytics",
        )
        return self.parser.parse_daily_analytics(data)

    async def get_product_analytics(
        self, store_url: str, access_token: str, since: date, until: date
    ) -> list[NormalizedProductRow]:
        """Daily sales per product title for a window."""
        shopifyql = product_analytics_shopifyql(since, until)
        logger.info("shopify.shopifyql_query", operation="product_analytics", query=shopifyql)
        data = await self.execute_graphql(
            store_url,
            access_token,
            wrap_shopifyql("getProductAnalytics", shopifyql),
            operation="product_analytics",
        )
        return self.parser.parse_product_analytics(data)

    # -------------------------------------------------------------------------
    # REST
    # -------------------------------------------------------------------------

    async def get_orders(self, store_url: str, access_token: str) -> list[dict[str, Any]]:
        """Orders of any status (first page)."""
        body = await self._request(
            "GET",
            store_url,
            access_token,
            "orders.json",
            "get_orders",
            params={"status": "any", "limit": self.settings.shopify_page_limit},
        )
        return list(body.get("orders") or [])

    async def get_products(self, store_url: str, access_token: str) -> list[dict[str, Any]]:
        """Products (first page)."""
        body = await self._request(
            "GET",
            store_url,
            access_token,
            "products.json",
            "get_products",
            params={"limit": self.settings.shopify_page_limit},
        )
        return list(body.get("products") or [])
