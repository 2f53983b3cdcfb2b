"""Application factory wiring tenant resolution, isolation and tenant routes."""

import asyncio
from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import UTC, datetime

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from multitenancy.api.middleware import (
    RequestLoggingMiddleware,
    TenantResolutionMiddleware,
)
from multitenancy.api.routes.tenants import router as tenants_router
from multitenancy.config import Settings, get_settings
from multitenancy.configuration import TenantConfiguration
from multitenancy.logging_config import configure_logging

logger = structlog.get_logger()

HEALTH_CHECK_TIMEOUT = 5.0


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Last-resort 500; details stay in the log."""
    logger.error("unhandled_exception", exc_info=exc, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


async def check_database(session_factory: async_sessionmaker[AsyncSession]) -> str:
    """``ok`` or ``error: <ExceptionType>`` for a ``SELECT 1`` round trip."""
    try:
        async with session_factory() as session:
            await asyncio.wait_for(
                session.execute(text("SELECT 1")),
                timeout=HEALTH_CHECK_TIMEOUT,
            )
    except (TimeoutError, SQLAlchemyError, OSError) as e:
        logger.warning("health_check_db_error", error=type(e).__name__)
        return f"error: {type(e).__name__}"
    return "ok"


def _lifespan(
    settings: Settings, engine: AsyncEngine | None
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        configure_logging(
            environment=str(settings.environment),
            log_level=settings.log_level,
        )
        configuration: TenantConfiguration = app.state.tenant_configuration
        logger.info(
            "app_started",
            environment=str(settings.environment),
            tenant_header=configuration.tenant_header,
        )
        yield
        if engine is not None:
            await engine.dispose()
        logger.info("app_stopped")

    return lifespan


def create_app(
    configuration: TenantConfiguration,
    *,
    engine: AsyncEngine | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Build the application around an already-built TenantConfiguration.

    Args:
        configuration: Frozen tenant configuration, shared by all requests.
        engine: Engine behind ``configuration.session_factory``; disposed
            on shutdown when given.
        settings: Application settings; defaults to ``get_settings()``.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Multitenancy",
        description="Tenant resolution, isolation and tenant management",
        version="0.1.0",
        lifespan=_lifespan(settings, engine),
        debug=settings.is_dev,
    )
    app.state.tenant_configuration = configuration

    # Starlette runs the last-added middleware first; logging sees tenant_id.
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(TenantResolutionMiddleware, configuration=configuration)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/health")
    async def health() -> JSONResponse:
        """Liveness plus database reachability."""
        checks = {"db": await check_database(configuration.session_factory)}
        healthy = all(status == "ok" for status in checks.values())
        return JSONResponse(
            status_code=200 if healthy else 503,
            content={
                "status": "ok" if healthy else "degraded",
                "checks": checks,
                "timestamp": datetime.now(UTC).isoformat(timespec="seconds"),
            },
        )

    app.include_router(tenants_router, prefix="/api/v1")
    return app
