"""Request-scoped context for correlation IDs and client fingerprints."""

import uuid
from contextvars import ContextVar

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
_fingerprint_var: ContextVar[str | None] = ContextVar("fingerprint", default=None)


class RequestContext:
    """Async-safe storage for request-scoped identifiers.

    Values live in contextvars, so each request task sees only its own
    correlation ID and fingerprint.
    """

    @staticmethod
    def set_correlation_id(correlation_id: str) -> None:
        """Set the correlation ID for the current context.

        Args:
            correlation_id: The correlation ID to store in the context.
        """
        _correlation_id_var.set(correlation_id)

    @staticmethod
    def get_correlation_id() -> str | None:
        """Get the correlation ID from the current context.

        Returns:
            str | None: The correlation ID if set, None otherwise.
        """
        return _correlation_id_var.get()

    @staticmethod
    def set_fingerprint(fingerprint: str) -> None:
        """Set the client fingerprint for the current context."""
        _fingerprint_var.set(fingerprint)

    @staticmethod
    def get_fingerprint() -> str | None:
        """Get the client fingerprint from the current context."""
        return _fingerprint_var.get()

    @staticmethod
    def clear() -> None:
        """Clear all context variables."""
        _correlation_id_var.set(None)
        _fingerprint_var.set(None)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracking.

    Returns:
        str: A string representation of a UUID4.
    """
    return str(uuid.uuid4())


def generate_request_id() -> str:
    """Generate a unique request ID for individual request tracking.

    Returns:
        str: A prefixed UUID4 string in format 'req-<uuid4>'.

    Examples:
        >>> request_id = generate_request_id()
        >>> request_id.startswith('req-')
        True
    """
    return f"req-{uuid.uuid4()}"
