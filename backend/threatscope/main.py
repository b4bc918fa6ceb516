"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from threatscope.api.v1.router import api_router
from threatscope.config import Settings, get_settings
from threatscope.container import ServiceContainer
from threatscope.errors import ConflictError, InternalError, ServiceError

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render domain errors as ``{"detail": ...}`` with their HTTP status."""
    body: dict[str, object] = {"detail": exc.message}
    if isinstance(exc, ConflictError):
        body["status"] = "already_running"
        body["source_id"] = exc.source_id
    return JSONResponse(status_code=exc.status_code, content=body)


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return await service_error_handler(request, InternalError("database error"))


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        container: Pre-built services; by default they are built from settings
            when the application starts.
    """
    settings = container.settings if container else get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager for startup/shutdown events."""
        configure_logging(settings)
        logger.info("Starting %s in %s mode", settings.app_name, settings.environment)

        services = container or ServiceContainer.from_settings(settings)
        app.state.container = services
        await services.start()

        yield

        logger.info("Shutting down")
        await services.stop()

    app = FastAPI(
        title=settings.app_name,
        description="Tor-routed scrape orchestration with threat classification and AI analysis",
        version="0.1.0",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    # Include API router
    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "app": settings.app_name}

    return app


app = create_app()
