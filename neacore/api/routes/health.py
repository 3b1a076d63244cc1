"""Liveness, readiness and status probes.

Probes read the services the application lifespan stores on ``app.state``:
``counter_store``, ``trusted_ranges`` (the refresher) and ``rate_limiter``.
"""

import os
import platform
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request
from loguru import logger

from neacore.api.utils.responses import ORJSONResponse, error_response, success_response
from neacore.core.config import get_settings
from neacore.core.exceptions import CounterStoreError, ErrorKind
from neacore.infrastructure.counter_store import CounterStore
from neacore.infrastructure.trusted_ranges import TrustedRangeRefresher

router = APIRouter(prefix="/health", tags=["health"])


def _now() -> str:
    return datetime.now(UTC).isoformat()


async def check_counter_store(request: Request) -> dict[str, Any]:
    """Ping the counter store.

    Returns:
        dict[str, Any]: ``{"healthy": bool}`` plus an ``error`` message when
            the store is down or not started.
    """
    store: CounterStore | None = getattr(request.app.state, "counter_store", None)
    if store is None:
        return {"healthy": False, "error": "Counter store not initialized"}
    try:
        healthy = await store.ping()
    except CounterStoreError as e:
        logger.warning("Counter store health check failed: {}", e.message)
        return {"healthy": False, "error": e.message}
    return {"healthy": healthy}


def _trusted_range_status(request: Request) -> dict[str, Any] | None:
    refresher: TrustedRangeRefresher | None = getattr(
        request.app.state, "trusted_ranges", None
    )
    if refresher is None:
        return None
    return {
        "state": refresher.state.value,
        "source": refresher.current.source,
        "ranges": len(refresher.current),
        "refreshing": refresher.running,
    }


@router.get("/live")
async def live(request: Request) -> ORJSONResponse:
    """Report that the process is serving requests."""
    return success_response(request, {"status": "alive", "timestamp": _now()})


@router.get("/ready")
async def ready(request: Request) -> ORJSONResponse:
    """Report whether the gateway can handle traffic.

    Answers ``service_unavailable`` with the failed checks when the counter
    store does not respond.
    """
    counter_store = await check_counter_store(request)
    checks: dict[str, Any] = {
        "counterStore": counter_store["healthy"],
        "timestamp": _now(),
    }
    if not counter_store["healthy"]:
        checks["counterStoreError"] = counter_store.get("error")
        return error_response(request, ErrorKind.SERVICE_UNAVAILABLE, errors=checks)

    return success_response(request, {"status": "ready", "checks": checks})


@router.get("/startup")
async def startup(request: Request) -> ORJSONResponse:
    """Report whether application startup has completed."""
    state = request.app.state
    services = {
        "counterStore": getattr(state, "counter_store", None) is not None,
        "trustedRanges": getattr(state, "trusted_ranges", None) is not None,
        "rateLimiter": getattr(state, "rate_limiter", None) is not None,
    }
    if not all(services.values()):
        return error_response(
            request,
            ErrorKind.SERVICE_UNAVAILABLE,
            errors={"status": "initializing", "timestamp": _now()},
        )

    return success_response(
        request,
        {"status": "initialized", "timestamp": _now(), "services": services},
    )


@router.get("/status")
async def status(request: Request) -> ORJSONResponse:
    """Report application, runtime and service details."""
    settings = get_settings()
    counter_store = await check_counter_store(request)

    services: dict[str, Any] = {"counterStore": counter_store["healthy"]}
    if not counter_store["healthy"]:
        services["counterStoreError"] = counter_store.get("error")

    trusted_ranges = _trusted_range_status(request)
    if trusted_ranges is not None:
        services["trustedRanges"] = trusted_ranges

    return success_response(
        request,
        {
            "application": {
                "name": settings.app_name,
                "version": settings.app_version,
                "environment": settings.environment,
                "timestamp": _now(),
            },
            "system": {
                "pythonVersion": platform.python_version(),
                "platform": platform.system().lower(),
                "pid": os.getpid(),
            },
            "services": services,
        },
    )
