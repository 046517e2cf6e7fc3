"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.database import dispose_engine, init_engine
from app.core.exceptions import register_exception_handlers
from app.core.health import router as health_router
from app.core.logging import configure_logging, get_logger
from app.core.middleware import RequestIdMiddleware
from app.features.analytics.routes import router as analytics_router
from app.features.jobs.routes import router as jobs_router
from app.features.jobs.worker import JobWorker
from app.features.stores.routes import router as stores_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown.

    Startup creates the database engine and starts the sync worker; shutdown
    stops the worker before the engine is disposed.

    Args:
        app: FastAPI application instance.

    Yields:
        None after startup, cleans up on shutdown.
    """
    settings = get_settings()

    # Startup
    configure_logging()
    init_engine()
    worker = JobWorker()
    await worker.start()
    app.state.job_worker = worker
    logger.info(
        "app.startup_completed",
        app_name=settings.app_name,
        app_env=settings.app_env,
        debug=settings.debug,
    )

    yield

    # Shutdown
    await worker.stop()
    await dispose_engine()
    logger.info("app.shutdown_completed")


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Store analytics engine for Shopify shops",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # Middleware (order matters - first added = outermost)
    # CORS middleware - allow the dashboard frontend to access the API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",  # Dashboard dev server
            "http://localhost:5173",  # Vite dev server
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ]
        if settings.is_development
        else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    # Exception handlers
    register_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(stores_router)
    app.include_router(analytics_router)
    app.include_router(jobs_router)

    return app


app = create_app()
