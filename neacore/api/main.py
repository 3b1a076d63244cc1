"""FastAPI application initialization and configuration module.

This module serves as the main entry point for the NeaCore gateway.
It handles:
- Application lifecycle management: the counter store, the trusted range
  refresher and the rate limiter are created on startup and released on
  shutdown
- Middleware registration in the correct order
- Exception handler registration
- Router mounting with the per-prefix gateway checks

The module follows a layered middleware approach where middleware are
executed in reverse order of registration, ensuring proper request/response
processing flow.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI
from loguru import logger

from neacore.api.dependencies import (
    enforce_rate_limit,
    require_signature,
    verify_client_session,
)
from neacore.api.middleware.cors import CorsMiddleware
from neacore.api.middleware.error_handler import register_exception_handlers
from neacore.api.middleware.fingerprint import FingerprintMiddleware
from neacore.api.middleware.request_context import RequestContextMiddleware
from neacore.api.middleware.request_logging import RequestLoggingMiddleware
from neacore.api.routes import errors, general, health
from neacore.api.routes.example import build_example_router
from neacore.api.utils.responses import ORJSONResponse
from neacore.core.config import Settings, get_settings
from neacore.core.logging import setup_logging
from neacore.infrastructure.counter_store import create_counter_store
from neacore.infrastructure.trusted_ranges import create_refresher
from neacore.security.rate_limiter import RateLimiter


@asynccontextmanager
async def lifespan(app_instance: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan events.

    Args:
        app_instance: The FastAPI application instance.

    Yields:
        None: Nothing is yielded, this is just a lifespan context.
    """
    settings: Settings = app_instance.state.settings
    rate_limit_config = settings.rate_limit_config

    # Startup: counter store, trusted ranges and the limiter built on them
    counter_store = create_counter_store(settings.redis_config)
    http_client = httpx.AsyncClient(timeout=rate_limit_config.fetch_timeout_seconds)
    refresher = create_refresher(rate_limit_config, http_client)

    if rate_limit_config.refresh_enabled:
        refresher.start()
    else:
        logger.info("Trusted range refresh disabled, using default ranges")

    app_instance.state.counter_store = counter_store
    app_instance.state.trusted_ranges = refresher
    app_instance.state.rate_limiter = RateLimiter.from_config(
        counter_store, refresher, rate_limit_config
    )

    logger.info(
        "Application startup complete - {} v{}",
        app_instance.title,
        app_instance.version,
    )

    yield

    # Shutdown: stop the refresher before closing what it uses
    logger.info("Application shutdown initiated")
    await refresher.stop()
    await http_client.aclose()
    await counter_store.close()
    logger.info("Application shutdown complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings instance. If not provided, will use get_settings().

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    # Setup logging first
    setup_logging(settings)

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    application.state.settings = settings

    # Register exception handlers BEFORE middleware
    register_exception_handlers(application)

    # Register middleware AFTER exception handlers
    # Order is important: middleware are executed in reverse order of registration
    # So the last middleware added is the first to process requests

    # 4. CORS policy (may answer preflight or forbidden before any route)
    application.add_middleware(CorsMiddleware, cors_config=settings.cors_config)

    # 3. Request logging middleware (logs requests/responses)
    application.add_middleware(RequestLoggingMiddleware, log_config=settings.log_config)

    # 2. Fingerprint middleware (client hash for traces and logs)
    application.add_middleware(FingerprintMiddleware)

    # 1. Request context middleware (timing and correlation ID)
    application.add_middleware(RequestContextMiddleware)

    # Routers; guards run in the order listed
    application.include_router(build_example_router())
    application.include_router(general.router)
    application.include_router(
        build_example_router(
            Depends(enforce_rate_limit),
            Depends(verify_client_session),
            Depends(require_signature),
            prefix="/api/secure",
        )
    )
    application.include_router(health.router)
    application.include_router(errors.router)

    return application


app = create_app()
