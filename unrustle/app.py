"""FastAPI application factory"""

import asyncio
import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles

from unrustle.core.config import Settings, get_settings
from unrustle.core.database import init_database_manager, reset_database_manager
from unrustle.core.dependencies import (
    close_providers,
    get_providers,
    get_session_service,
    get_state_registry,
)
from unrustle.core.exceptions import ConfigurationError, UserStoreError
from unrustle.core.logging import setup_logging
from unrustle.routers import auth_router, pages_router

logger = logging.getLogger(__name__)

ASSETS_DIR = Path(__file__).resolve().parent / "assets"

# Track server start time
_start_time: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle startup and shutdown"""
    global _start_time
    _start_time = time.time()

    settings: Settings = app.state.settings

    # Startup
    logger.info("Starting UnRustle login gateway")
    logger.info(f"Environment: {settings.server.environment}")

    # Fail before serving on unusable credentials
    try:
        get_session_service(settings)
        get_providers(settings)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    db_manager = None
    if settings.database.url:
        db_manager = init_database_manager(settings.database.url)
        try:
            await db_manager.connect()
        except Exception as e:
            reset_database_manager()
            await close_providers()
            raise ConfigurationError("database unusable at startup") from e
        logger.info("Database connected")
    else:
        logger.warning("No database URL configured, users are kept in memory")

    registry = get_state_registry(settings)
    sweeper_task = asyncio.create_task(
        registry.run_sweeper(settings.server.state_sweep_interval)
    )
    logger.info(f"OAuth state sweeper started (interval={settings.server.state_sweep_interval}s)")

    yield

    # Shutdown
    logger.info("Shutting down UnRustle login gateway")
    sweeper_task.cancel()
    await asyncio.gather(sweeper_task, return_exceptions=True)
    try:
        await close_providers()
        if db_manager is not None:
            await db_manager.disconnect()
            reset_database_manager()
            logger.info("Database disconnected")
    except Exception as e:
        logger.exception(f"Error during shutdown: {e}")


async def user_store_error_handler(request: Request, exc: Exception) -> PlainTextResponse:
    logger.error(f"User store error on {request.url.path}: {exc}")
    return PlainTextResponse("Something went wrong, try again", status_code=500)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure FastAPI application.

    Passing *settings* pins them for every dependency instead of the cached
    ``get_settings()``.
    """
    if settings is None:
        settings = get_settings()

    # Setup logging first
    setup_logging(settings)

    app = FastAPI(
        title="UnRustle",
        description="Twitch / Destiny.gg login gateway",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.server.is_development else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.server.is_development else None,
    )
    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings

    app.add_exception_handler(UserStoreError, user_store_error_handler)

    app.mount("/assets", StaticFiles(directory=ASSETS_DIR), name="assets")

    # Register routers
    app.include_router(pages_router.router)
    app.include_router(auth_router.router)

    # Liveness probe, no external dependency
    @app.get("/health")
    async def health():
        """Liveness check"""
        return {
            "status": "healthy",
            "uptime_seconds": int(time.time() - _start_time),
        }

    logger.info("FastAPI application configured")

    return app
