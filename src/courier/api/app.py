"""FastAPI application for Courier."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from courier import __version__
from courier.config import Settings
from courier.exceptions import (
    AuthenticationError,
    ConfigurationError,
    CourierError,
    IntegrationLookupError,
    StorageError,
)
from courier.logging import configure_logging, get_logger
from courier.service import CourierService

from .router import router, set_service

logger = get_logger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application.

    Args:
        settings: Optional settings. Uses environment if None.

    Returns:
        Configured FastAPI application.

    Example:
        ```python
        from courier.api import create_app

        app = create_app()
        # Run with: uvicorn courier.api:app
        ```
    """
    if settings is None:
        settings = Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Build the service on startup and release it on shutdown."""
        configure_logging(level=settings.log_level, format=settings.log_format)
        logger.info("Starting Courier API", env=settings.env, log_level=settings.log_level)

        service = CourierService.create(settings)
        await service.initialize()
        set_service(service)

        yield

        await service.close()
        set_service(None)

    app = FastAPI(
        title="Courier",
        description="Signed outbound webhooks with durable delivery logs and retries.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Register exception handlers
    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(
        request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        """Handle authentication errors with 401 status."""
        logger.warning("Authentication failed", error=exc.message, path=str(request.url))
        return JSONResponse(
            status_code=401,
            content=exc.to_dict(),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(IntegrationLookupError)
    async def lookup_error_handler(request: Request, exc: IntegrationLookupError) -> JSONResponse:
        """Handle missing integrations with 404 status."""
        logger.info(
            "Integration not found",
            organization_id=exc.organization_id,
            provider=exc.provider,
            path=str(request.url),
        )
        return JSONResponse(status_code=404, content=exc.to_dict())

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        """Handle storage errors with 503 status."""
        logger.error("Storage error", error=exc.message, path=str(request.url))
        return JSONResponse(status_code=503, content=exc.to_dict())

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        """Handle configuration errors with 500 status."""
        logger.error("Configuration error", error=exc.message, path=str(request.url))
        return JSONResponse(status_code=500, content=exc.to_dict())

    @app.exception_handler(CourierError)
    async def courier_error_handler(request: Request, exc: CourierError) -> JSONResponse:
        """Handle all other Courier errors with 500 status."""
        logger.error("Courier error", error=exc.message, code=exc.code, path=str(request.url))
        return JSONResponse(status_code=500, content=exc.to_dict())

    app.include_router(router, prefix="/api/v1")

    return app
