"""FastAPI application factory and dependency injection setup."""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from fund_nav_engine.api.routes import (
    account_router,
    distribution_router,
    fund_router,
    health_router,
    nav_router,
    performance_router,
    redemption_router,
)
from fund_nav_engine.config import get_settings
from fund_nav_engine.container import get_container, get_database, reset_container
from fund_nav_engine.exceptions import FundNavEngineError
from fund_nav_engine.logging_config import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)
from fund_nav_engine.repositories.sqlite import SQLiteDatabase

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging and open the database on startup; close it on shutdown."""
    settings = get_settings()
    configure_logging(settings)

    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment.value,
    )

    container = get_container()
    _ = container.database

    logger.info("application_started")

    yield

    logger.info("application_stopping")
    reset_container()
    logger.info("application_stopped")


def get_db() -> SQLiteDatabase:
    """Get the database instance.

    Used as the FastAPI dependency for SQLiteDatabase; tests override it
    through app.dependency_overrides.
    """
    return get_database()


async def log_request_middleware(request: Request, call_next):
    """Middleware to add request context to logs."""
    request_id = str(uuid.uuid4())[:8]
    bind_context(request_id=request_id, path=request.url.path, method=request.method)

    try:
        response = await call_next(request)
        logger.debug(
            "request_completed",
            status_code=response.status_code,
        )
        return response
    finally:
        clear_context()


async def exception_handler(request: Request, exc: FundNavEngineError) -> JSONResponse:
    """Handle engine exceptions and return their kind and message as JSON."""
    logger.warning(
        "domain_exception",
        error_code=exc.error_code,
        kind=exc.kind,
        message=exc.message,
        context=exc.context,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="NAV calculation, approval, capital accounts, redemptions and fund performance",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.middleware("http")(log_request_middleware)
    app.add_exception_handler(FundNavEngineError, exception_handler)

    # Routes depend on SQLiteDatabase; resolve it through get_db
    app.dependency_overrides[SQLiteDatabase] = get_db

    app.include_router(health_router)
    app.include_router(fund_router)
    app.include_router(nav_router)
    app.include_router(account_router)
    app.include_router(redemption_router)
    app.include_router(distribution_router)
    app.include_router(performance_router)

    return app


# Create app instance for uvicorn
app = create_app()
