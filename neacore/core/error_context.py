"""Sensitive data redaction for logs.

Request credentials travel in headers, query strings and bodies (the
``x-secret``/``x-signature`` pair among them). Anything logged by the gateway
goes through this module first so secrets never reach log sinks.

- **Pattern matching**: Regex-based detection of sensitive field names
- **Configurable fields**: Additional sensitive fields via configuration
- **Deep sanitization**: Recursive handling of nested data structures

Only logged copies are redacted; request data itself is left untouched.
"""

from __future__ import annotations

import re
from functools import lru_cache
from re import Pattern
from typing import Any, Final

from neacore.core.config import get_settings
from neacore.core.constants import REDACTED

SanitizableValue = (
    str | int | float | bool | None | dict[str, Any] | list[Any] | tuple[Any, ...]
)

SENSITIVE_HEADERS = {
    "authorization",
    "cookie",
    "set-cookie",
    "proxy-authorization",
    "x-api-key",
    "x-secret",
    "x-signature",
}

DEFAULT_SENSITIVE_PATTERN: Final[Pattern[str]] = re.compile(
    r"(password|passwd|pwd|secret|token|signature|api[_-]?key|apikey|"
    r"authorization|credential|private[_-]?key|session|cvv|card[_-]?number)",
    re.IGNORECASE,
)

MAX_DEPTH: Final[int] = 10


@lru_cache(maxsize=1)
def _get_sensitive_fields() -> list[str]:
    """Get the configured sensitive fields from settings."""
    return get_settings().log_config.sensitive_fields


def is_sensitive_field(field_name: str) -> bool:
    """Check if a field name indicates sensitive data.

    Args:
        field_name: The field name to check.

    Returns:
        bool: True if the field appears to contain sensitive data.
    """
    if DEFAULT_SENSITIVE_PATTERN.search(field_name):
        return True

    field_lower = field_name.lower()
    return any(s.lower() in field_lower for s in _get_sensitive_fields())


def is_sensitive_header(header_name: str) -> bool:
    """Check if a header name is sensitive (case-insensitive)."""
    return header_name.lower() in SENSITIVE_HEADERS


def sanitize_value(
    value: SanitizableValue, field_name: str = "", depth: int = 0
) -> SanitizableValue:
    """Redact a value if its field name looks sensitive.

    Nested dicts, lists and tuples are walked up to MAX_DEPTH.

    Args:
        value: The value to potentially redact.
        field_name: The field name for context.
        depth: Current recursion depth.

    Returns:
        SanitizableValue: Redacted value or the original.
    """
    if depth > MAX_DEPTH:
        return REDACTED

    if field_name and is_sensitive_field(field_name):
        return REDACTED

    if isinstance(value, dict):
        return {k: sanitize_value(v, str(k), depth + 1) for k, v in value.items()}

    if isinstance(value, list):
        return [sanitize_value(item, "", depth + 1) for item in value]

    if isinstance(value, tuple):
        return tuple(sanitize_value(item, "", depth + 1) for item in value)

    return value


def sanitize_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with sensitive fields redacted."""
    return {key: sanitize_value(value, key) for key, value in data.items()}


def sanitize_headers(headers: dict[str, str]) -> dict[str, str]:
    """Return a copy of ``headers`` with sensitive headers redacted."""
    return {k: REDACTED if is_sensitive_header(k) else v for k, v in headers.items()}


def sanitize_error_context(
    error: Exception, context: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Create sanitized error context for logging.

    Args:
        error: The exception to create context for.
        context: Additional context to include (will be sanitized).

    Returns:
        dict[str, Any]: Sanitized error context safe for logging.
    """
    error_context: dict[str, Any] = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }

    if context:
        error_context.update(sanitize_dict(context))

    return error_context
