"""Run the NeaCore gateway under uvicorn.

The listen port is ``PORT`` when the process manager assigns one (container
platforms, PaaS dynos), ``API_PORT`` from settings otherwise. With
``DEBUG=true`` the server reloads on code changes.
"""

import os

import uvicorn
from loguru import logger

from neacore.api.main import app
from neacore.core.config import get_settings
from neacore.core.logging import setup_logging

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def build_uvicorn_log_config() -> dict[str, object]:
    """Route every uvicorn logger through Loguru's intercept handler."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "handlers": {
            "default": {"class": "neacore.core.logging.InterceptHandler"},
        },
        "loggers": {
            name: {"handlers": ["default"], "level": "INFO", "propagate": False}
            for name in UVICORN_LOGGERS
        },
    }


def main() -> None:
    """Start the gateway."""
    settings = get_settings()
    setup_logging(settings)

    # An assigned PORT overrides the configured one
    port = int(os.environ.get("PORT", settings.api_port))
    mode = "development, auto-reload" if settings.debug else "production"
    logger.info(
        "Starting {} on http://{}:{} ({})",
        settings.app_name,
        settings.api_host,
        port,
        mode,
    )

    # Reload needs an import string so the worker can re-import the app
    uvicorn.run(
        "neacore.api.main:app" if settings.debug else app,
        host=settings.api_host,
        port=port,
        reload=settings.debug,
        log_config=build_uvicorn_log_config(),
    )


if __name__ == "__main__":
    main()
