"""Structured logging with structlog and request/store context."""

import logging
from collections.abc import MutableMapping
from contextvars import ContextVar
from typing import Any

import structlog

from app.core.config import get_settings

# Context variables for request correlation
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
store_id_ctx: ContextVar[int | None] = ContextVar("store_id", default=None)


def add_request_context(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Add request_id and store_id from context to log events."""
    request_id = request_id_ctx.get()
    if request_id:
        event_dict["request_id"] = request_id
    store_id = store_id_ctx.get()
    if store_id is not None:
        event_dict.setdefault("store_id", store_id)
    return event_dict


def configure_logging() -> None:
    """Configure structlog for the application.

    Standard library loggers (uvicorn, sqlalchemy, httpx) are routed to the
    same level so third-party output does not drown the structured events.
    """
    settings = get_settings()
    level = getattr(logging, settings.log_level)

    shared_processors: list[structlog.types.Processor] = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_request_context,
    ]

    if settings.log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a configured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module).

    Returns:
        Configured structlog logger with request context binding.
    """
    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger
