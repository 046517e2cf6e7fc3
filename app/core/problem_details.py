"""RFC 7807 Problem Details for HTTP APIs.

Every error leaving the API is rendered as ``application/problem+json`` so
dashboard clients can branch on ``type``/``code`` instead of parsing text.

Reference: https://datatracker.ietf.org/doc/html/rfc7807
"""

from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from app.core.logging import request_id_ctx

# =============================================================================
# Error Type URIs
# =============================================================================

ERROR_TYPE_BASE = "/errors"

ERROR_TYPES = {
    "NOT_FOUND": f"{ERROR_TYPE_BASE}/not-found",
    "VALIDATION_ERROR": f"{ERROR_TYPE_BASE}/validation",
    "DATABASE_ERROR": f"{ERROR_TYPE_BASE}/database",
    "CONFLICT": f"{ERROR_TYPE_BASE}/conflict",
    "INTERNAL_ERROR": f"{ERROR_TYPE_BASE}/internal",
    "BAD_REQUEST": f"{ERROR_TYPE_BASE}/bad-request",
    "EXTERNAL_SERVICE_ERROR": f"{ERROR_TYPE_BASE}/external-service",
    "SHOPIFYQL_ERROR": f"{ERROR_TYPE_BASE}/shopifyql",
    "SERVICE_UNAVAILABLE": f"{ERROR_TYPE_BASE}/service-unavailable",
}


# =============================================================================
# Problem Detail Schema
# =============================================================================


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details body.

    Attributes:
        type: URI identifying the error type.
        title: Short human-readable summary of the problem.
        status: HTTP status code.
        detail: Explanation specific to this occurrence.
        instance: URI reference for this occurrence.
        errors: Field-level validation errors (extension for 422).
        code: Machine-readable error code (extension).
        context: Diagnostic context such as store_id and operation (extension).
        request_id: Request correlation ID (extension).
    """

    model_config = ConfigDict(extra="allow")

    type: str = Field(default="about:blank", description="URI reference identifying the problem type.")
    title: str = Field(..., description="Short, human-readable summary of the problem type.")
    status: int = Field(..., ge=400, le=599, description="HTTP status code for this occurrence.")
    detail: str | None = Field(None, description="Explanation specific to this occurrence.")
    instance: str | None = Field(None, description="URI reference for this occurrence.")
    errors: list[dict[str, Any]] | None = Field(
        None, description="Field-level validation errors (422 responses only)."
    )
    code: str | None = Field(None, description="Machine-readable error code.")
    context: dict[str, Any] | None = Field(
        None, description="Operator diagnostics (store_id, operation) for failed external calls."
    )
    request_id: str | None = Field(None, description="Request correlation ID.")


class ProblemDetailResponse(JSONResponse):
    """JSON response with RFC 7807 content type."""

    media_type = "application/problem+json"


# =============================================================================
# Helper Functions
# =============================================================================


def create_problem_detail(
    status: int,
    title: str,
    detail: str | None = None,
    error_code: str = "INTERNAL_ERROR",
    errors: list[dict[str, Any]] | None = None,
    context: dict[str, Any] | None = None,
) -> ProblemDetail:
    """Create a ProblemDetail with type URI and request instance filled in.

    Args:
        status: HTTP status code.
        title: Short problem summary.
        detail: Detailed explanation (optional).
        error_code: Internal error code for type URI lookup.
        errors: Field-level validation errors (optional).
        context: Diagnostic context (optional).

    Returns:
        Configured ProblemDetail instance.
    """
    request_id = request_id_ctx.get()

    return ProblemDetail(
        type=ERROR_TYPES.get(error_code, f"{ERROR_TYPE_BASE}/{error_code.lower()}"),
        title=title,
        status=status,
        detail=detail,
        instance=f"/requests/{request_id}" if request_id else None,
        errors=errors,
        code=error_code,
        context=context or None,
        request_id=request_id,
    )


def problem_response(
    status: int,
    title: str,
    detail: str | None = None,
    error_code: str = "INTERNAL_ERROR",
    errors: list[dict[str, Any]] | None = None,
    context: dict[str, Any] | None = None,
) -> ProblemDetailResponse:
    """Create a ProblemDetailResponse with proper content type."""
    problem = create_problem_detail(
        status=status,
        title=title,
        detail=detail,
        error_code=error_code,
        errors=errors,
        context=context,
    )

    return ProblemDetailResponse(
        status_code=status,
        content=problem.model_dump(mode="json", exclude_none=True),
    )
