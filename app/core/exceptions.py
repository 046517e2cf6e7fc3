"""Application exceptions and FastAPI exception handlers.

Errors are rendered as RFC 7807 Problem Details. External failures carry a
``details`` mapping (store_id, operation) that is surfaced as ``context``.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from app.core.logging import get_logger
from app.core.problem_details import (
    ERROR_TYPES,
    ProblemDetailResponse,
    problem_response,
)

logger = get_logger(__name__)


# =============================================================================
# Exception Classes
# =============================================================================


class StoreAnalyticsError(Exception):
    """Base exception for application errors.

    Each subclass maps to an RFC 7807 problem type URI.
    """

    error_type_uri: str = ERROR_TYPES["INTERNAL_ERROR"]

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application error.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            status_code: HTTP status code.
            details: Additional error context.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    @property
    def title(self) -> str:
        """RFC 7807 title - short summary of problem type."""
        return self.code.replace("_", " ").title()


class NotFoundError(StoreAnalyticsError):
    """Requested resource (store, job) does not exist."""

    error_type_uri: str = ERROR_TYPES["NOT_FOUND"]

    def __init__(
        self,
        message: str = "Resource not found",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code="NOT_FOUND", status_code=404, details=details)


class ValidationError(StoreAnalyticsError):
    """Input validation error."""

    error_type_uri: str = ERROR_TYPES["VALIDATION_ERROR"]

    def __init__(
        self,
        message: str = "Validation failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message, code="VALIDATION_ERROR", status_code=422, details=details
        )


class DatabaseError(StoreAnalyticsError):
    """Aggregate query or persistence failed unexpectedly."""

    error_type_uri: str = ERROR_TYPES["DATABASE_ERROR"]

    def __init__(
        self,
        message: str = "Database operation failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code="DATABASE_ERROR", status_code=500, details=details)


class ConflictError(StoreAnalyticsError):
    """Operation conflicts with existing state (duplicate store, non-cancellable job)."""

    error_type_uri: str = ERROR_TYPES["CONFLICT"]

    def __init__(
        self,
        message: str = "Resource conflict",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code="CONFLICT", status_code=409, details=details)


class BadRequestError(StoreAnalyticsError):
    """Malformed request input such as an unparseable date or inverted range."""

    error_type_uri: str = ERROR_TYPES["BAD_REQUEST"]

    def __init__(
        self,
        message: str = "Bad request",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code="BAD_REQUEST", status_code=400, details=details)


class ExternalServiceError(StoreAnalyticsError):
    """Call to the Shopify Admin API failed.

    Covers transport errors, non-2xx responses and GraphQL errors. Never
    retried automatically.
    """

    error_type_uri: str = ERROR_TYPES["EXTERNAL_SERVICE_ERROR"]

    def __init__(
        self,
        message: str = "External service request failed",
        details: dict[str, Any] | None = None,
        code: str = "EXTERNAL_SERVICE_ERROR",
    ) -> None:
        super().__init__(message=message, code=code, status_code=502, details=details)


class ShopifyQLError(ExternalServiceError):
    """ShopifyQL reported parse errors other than an unsupported field."""

    error_type_uri: str = ERROR_TYPES["SHOPIFYQL_ERROR"]

    def __init__(
        self,
        message: str = "ShopifyQL query failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, details=details, code="SHOPIFYQL_ERROR")


class ServiceUnavailableError(StoreAnalyticsError):
    """A process-wide dependency (job worker queue) cannot accept work."""

    error_type_uri: str = ERROR_TYPES["SERVICE_UNAVAILABLE"]

    def __init__(
        self,
        message: str = "Service unavailable",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message, code="SERVICE_UNAVAILABLE", status_code=503, details=details
        )


# =============================================================================
# Exception Handlers (RFC 7807)
# =============================================================================


async def store_analytics_exception_handler(
    _request: Request,
    exc: StoreAnalyticsError,
) -> ProblemDetailResponse:
    """Render StoreAnalyticsError subclasses as Problem Details.

    Client errors (4xx) are logged at warning level, server and upstream
    failures at error level with the traceback.
    """
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "app.error_handled",
        error=exc.message,
        error_type=type(exc).__name__,
        error_code=exc.code,
        status_code=exc.status_code,
        details=exc.details,
        exc_info=exc.status_code >= 500,
    )

    return problem_response(
        status=exc.status_code,
        title=exc.title,
        detail=exc.message,
        error_code=exc.code,
        context=exc.details,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> ProblemDetailResponse:
    """Render request validation failures with a field-level ``errors`` list."""
    field_errors: list[dict[str, str]] = []
    for error in exc.errors():
        loc = error.get("loc", [])
        field_path = ".".join(str(part) for part in loc if part != "body")
        field_errors.append(
            {
                "field": field_path,
                "message": str(error.get("msg", "Validation failed")),
                "type": str(error.get("type", "unknown")),
            }
        )

    logger.warning(
        "app.validation_error",
        error_count=len(field_errors),
        path=str(request.url.path),
        fields=[e["field"] for e in field_errors],
    )

    return problem_response(
        status=422,
        title="Validation Error",
        detail=f"Request validation failed with {len(field_errors)} error(s). "
        "Check the 'errors' field for details.",
        error_code="VALIDATION_ERROR",
        errors=field_errors,
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> ProblemDetailResponse:
    """Render unexpected exceptions as a generic 500 problem."""
    logger.error(
        "app.unhandled_error",
        error=str(exc),
        error_type=type(exc).__name__,
        path=str(request.url.path),
        exc_info=True,
    )

    return problem_response(
        status=500,
        title="Internal Server Error",
        detail="An unexpected error occurred. Contact support with the request_id.",
        error_code="INTERNAL_ERROR",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.add_exception_handler(StoreAnalyticsError, store_analytics_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
