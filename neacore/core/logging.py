"""Structured logging built on Loguru.

Formatter types:
- **console**: Human-readable with inline context (development)
- **json**: One JSON object per line (production, log shippers)

Request-scoped fields (correlation ID, request ID, client fingerprint) are
attached with ``logger.contextualize`` by the API middleware and rendered by
both formatters. Standard library loggers, uvicorn included, are routed into
Loguru through ``InterceptHandler``.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any, Final, Protocol, cast

from loguru import logger

from neacore.core.config import get_settings
from neacore.core.constants import REDACTED


class _LoggingState:
    """Simple state holder to track if logging has been configured."""

    def __init__(self) -> None:
        self.configured = False


_state = _LoggingState()


class LogConfigProtocol(Protocol):
    """Protocol for log configuration objects."""

    @property
    def log_level(self) -> str:
        """Logging level."""
        ...

    @property
    def log_formatter_type(self) -> str | None:
        """Log formatter type."""
        ...


class SettingsProtocol(Protocol):
    """Protocol for settings objects that setup_logging can accept."""

    @property
    def debug(self) -> bool:
        """Debug mode flag."""
        ...

    @property
    def log_config(self) -> LogConfigProtocol:
        """Log configuration."""
        ...


DEFAULT_LOG_FORMAT: Final[str] = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{message}"
)
SHORT_ID_DISPLAY_LENGTH: Final[int] = 8
MAX_FIELD_VALUE_LENGTH: Final[int] = 100

PRIORITY_FIELDS: Final[tuple[str, ...]] = (
    "correlation_id",
    "request_id",
    "fingerprint",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "client_host",
)


def _escape(value: object) -> str:
    return str(value).replace("{", "{{").replace("}", "}}")


def _format_priority_field(field: str, value: object) -> str:
    """Format a priority field for display.

    Args:
        field: The field name.
        value: The field value.

    Returns:
        str: Formatted, brace-escaped value.
    """
    if field in {"correlation_id", "fingerprint"}:
        value = str(value)[:SHORT_ID_DISPLAY_LENGTH]
    elif field == "duration_ms":
        value = f"{value}ms"
    elif field == "status_code":
        status_str = str(value)
        if status_str.startswith("2"):
            value = f"<green>{value}</green>"
        elif status_str.startswith("3"):
            value = f"<yellow>{value}</yellow>"
        else:
            value = f"<red>{value}</red>"
    return _escape(value)


def _format_extra_field(key: str, value: object) -> str:
    """Format an extra field for display, redacting configured fields."""
    str_value = str(value)

    if key in get_settings().log_config.sensitive_fields:
        str_value = REDACTED
    elif len(str_value) > MAX_FIELD_VALUE_LENGTH:
        str_value = str_value[: MAX_FIELD_VALUE_LENGTH - 3] + "..."

    return f"{_escape(key)}={_escape(str_value)}"


def _format_context_fields(extra: dict[str, Any]) -> list[str]:
    """Format all context fields from extra data.

    Args:
        extra: Extra fields from the log record.

    Returns:
        list[str]: Formatted context parts, priority fields first.
    """
    context_parts = [
        f"<yellow>{_format_priority_field(field, extra[field])}</yellow>"
        for field in PRIORITY_FIELDS
        if extra.get(field) is not None
    ]

    for key, value in extra.items():
        if key in PRIORITY_FIELDS or key.startswith("_") or value is None:
            continue
        context_parts.append(f"<dim>{_format_extra_field(key, value)}</dim>")

    return context_parts


def format_console_with_context(record: dict[str, Any]) -> str:
    """Format a log record for the console with all context fields visible.

    Args:
        record: Loguru record to format.

    Returns:
        str: Loguru format string for this record.
    """
    try:
        level = record["level"]
        parts = [
            f"<green>{record['time'].strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]}</green>",
            f"<level>{level.name: <8}</level>",
            f"<cyan>{record['name']}:{record['function']}:{record['line']}</cyan>",
        ]

        context_parts = _format_context_fields(record.get("extra", {}))
        if context_parts:
            parts.append(" ".join(f"[{part}]" for part in context_parts))

        parts.append(_escape(record.get("message", "")))

        if record.get("exception"):
            parts.append("\n{exception}")

        return " | ".join(parts) + "\n"
    except (AttributeError, TypeError, ValueError, KeyError) as e:
        logger.trace(f"Failed to format log record: {e}")
        return DEFAULT_LOG_FORMAT + "\n"


def serialize_for_json(record: dict[str, Any]) -> str:
    """Format a log record as one JSON line.

    Args:
        record: Loguru record to format.

    Returns:
        str: JSON-formatted log entry with newline.
    """
    log_entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
        "service": get_settings().app_name,
    }

    if extra := record.get("extra", {}):
        log_entry.update({k: v for k, v in extra.items() if not k.startswith("_")})

    if exc := record.get("exception"):
        log_entry["exception"] = {
            "type": exc.type.__name__ if exc.type else None,
            "value": str(exc.value) if exc.value else None,
        }

    return json.dumps(log_entry, default=str) + "\n"


class InterceptHandler(logging.Handler):
    """Forward standard library log records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        """Forward log record to Loguru.

        Args:
            record: Standard library LogRecord to forward.
        """
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller the record originated from
        try:
            frame, depth = sys._getframe(6), 6
            while frame and frame.f_code.co_filename == logging.__file__:
                if frame.f_back is None:
                    break
                frame = frame.f_back
                depth += 1
        except ValueError:
            depth = 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def detect_formatter() -> str:
    """Pick a formatter when none is configured."""
    if os.getenv("K_SERVICE") or os.getenv("AWS_EXECUTION_ENV"):
        return "json"
    return "console"


def setup_logging(settings: SettingsProtocol) -> None:
    """Configure Loguru sinks and standard library interception.

    Args:
        settings: Application settings containing log configuration.

    Note:
        Only the first call has an effect.
    """
    if _state.configured:
        return

    logger.remove()

    formatter_type = settings.log_config.log_formatter_type or detect_formatter()

    if formatter_type == "json":

        def structured_sink(message: object) -> None:
            """Write each record as a JSON line to stdout."""
            sys.stdout.write(serialize_for_json(cast("Any", message).record))
            sys.stdout.flush()

        logger.add(
            structured_sink,
            level=settings.log_config.log_level,
            enqueue=True,
            diagnose=False,
            backtrace=False,
        )
    else:
        logger.add(
            sys.stdout,
            format=cast("Any", format_console_with_context),
            level=settings.log_config.log_level,
            enqueue=True,
            colorize=True,
            diagnose=settings.debug,
            backtrace=settings.debug,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.handlers = [InterceptHandler()]
        uvicorn_logger.propagate = False

    # httpx logs every range fetch at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger.info(
        "Logging configured with {} formatter",
        formatter_type,
        log_level=settings.log_config.log_level,
    )

    _state.configured = True
