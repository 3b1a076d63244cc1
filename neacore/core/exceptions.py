"""Structured exception hierarchy for consistent error handling.

This module defines the exception system of the gateway. Every failure a client
can observe maps to exactly one identifier of the closed ``ErrorKind``
vocabulary; the API layer renders that identifier as a problem-detail response.

Key components:
- **ErrorKind enum**: Closed vocabulary of client-visible error identifiers
- **Severity enum**: Error classification for monitoring and alerting
- **GatewayError**: Base exception with rich context and fingerprinting
- **Specialized exceptions**: Authentication, throttling, validation and
  address parsing failures

Field-level validation problems are never raised one by one; the validator
collects them and the route dependency raises a single
``ValidationFailedError`` carrying the whole list.
"""

import hashlib
import traceback
from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Closed vocabulary of error identifiers exposed to clients."""

    UNKNOWN_ERROR = "unknown_error"
    BAD_REQUEST = "bad_request"
    MISSING_PARAMETER = "missing_parameter"
    VERIFICATION_FAILED = "verification_failed"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    NOT_ACCEPTABLE = "not_acceptable"
    CONFLICT = "conflict"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    VALIDATION_ERROR = "validation_error"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    INTERNAL_ERROR = "internal_error"
    NOT_IMPLEMENTED = "not_implemented"
    SERVICE_UNAVAILABLE = "service_unavailable"


class Severity(Enum):
    """Severity levels for gateway errors."""

    LOW = "LOW"
    """Expected errors caused by client input."""

    MEDIUM = "MEDIUM"
    """Errors that affect a single request but not the service."""

    HIGH = "HIGH"
    """Security relevant or integrity errors."""

    CRITICAL = "CRITICAL"
    """Errors requiring immediate attention."""


class GatewayError(Exception):
    """Base exception class for all gateway exceptions.

    Args:
        error_code: Identifier of the error kind (string or ErrorKind enum)
        message: Stable, client-safe description of the failure
        severity: Severity level of the error (defaults to MEDIUM)
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        error_code: str | ErrorKind,
        message: str,
        severity: Severity = Severity.MEDIUM,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.error_code = (
            error_code.value if isinstance(error_code, ErrorKind) else error_code
        )
        self.message = message
        self.severity = severity
        self.context = context or {}
        self.cause = cause

        # Capture stack trace at creation time
        self.stack_trace = traceback.format_stack()[:-1]

        self.fingerprint = self._generate_fingerprint()

        super().__init__(message)
        if cause:
            self.__cause__ = cause

    def _generate_fingerprint(self) -> str:
        """Generate a fingerprint for error grouping.

        Returns:
            str: A hash string built from the error type and raise location
        """
        max_frames = 5
        relevant_frames = (
            self.stack_trace[-max_frames:]
            if len(self.stack_trace) > max_frames
            else self.stack_trace
        )

        fingerprint_data = f"{self.__class__.__name__}:{self.error_code}"

        for frame in relevant_frames:
            if "site-packages" not in frame and "neacore/" in frame:
                lines = frame.strip().split("\n")
                if lines:
                    fingerprint_data += f":{lines[0]}"

        return hashlib.sha256(fingerprint_data.encode()).hexdigest()[:16]

    @property
    def kind(self) -> ErrorKind:
        """The ErrorKind of this error, UNKNOWN_ERROR for custom codes."""
        try:
            return ErrorKind(self.error_code)
        except ValueError:
            return ErrorKind.UNKNOWN_ERROR

    @property
    def is_expected(self) -> bool:
        """Whether the error is part of normal operation (LOW or MEDIUM)."""
        return self.severity in (Severity.LOW, Severity.MEDIUM)

    @property
    def should_alert(self) -> bool:
        """Whether the error should trigger alerts (HIGH or CRITICAL)."""
        return self.severity in (Severity.HIGH, Severity.CRITICAL)

    def __str__(self) -> str:
        """Return a string representation of the exception."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return a detailed representation of the exception."""
        class_name = self.__class__.__name__
        context_str = f", context={self.context}" if self.context else ""
        return (
            f"{class_name}(error_code='{self.error_code}', "
            f"message='{self.message}', severity={self.severity.value}{context_str})"
        )


class ValidationFailedError(GatewayError):
    """Raised when a request payload fails its declared RuleSet.

    Args:
        issues: Every field issue found, in RuleSet order
        message: Summary message
    """

    def __init__(
        self,
        issues: list[dict[str, str]],
        message: str = "Validation Failed",
        context: dict[str, Any] | None = None,
    ) -> None:
        self.issues = issues
        super().__init__(
            ErrorKind.VALIDATION_ERROR,
            message,
            Severity.LOW,
            {"issue_count": len(issues), **(context or {})},
        )


class BadRequestError(GatewayError):
    """Raised when the request body or query cannot be parsed."""

    def __init__(
        self,
        message: str = "Bad Request",
        error_code: str | ErrorKind = ErrorKind.BAD_REQUEST,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.LOW, context, cause)


class UnauthorizedError(GatewayError):
    """Raised when credentials are missing or unknown."""

    def __init__(
        self,
        message: str = "Unauthorized",
        error_code: str | ErrorKind = ErrorKind.UNAUTHORIZED,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.HIGH, context, cause)


class ForbiddenError(GatewayError):
    """Raised when credentials are invalid or the source is not trusted."""

    def __init__(
        self,
        message: str = "Forbidden",
        error_code: str | ErrorKind = ErrorKind.FORBIDDEN,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.HIGH, context, cause)


class RateLimitExceededError(GatewayError):
    """Raised when a client exceeds its request budget for the current window."""

    def __init__(
        self,
        message: str = "Rate Limit Exceeded",
        error_code: str | ErrorKind = ErrorKind.RATE_LIMIT_EXCEEDED,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.LOW, context)


class ServiceUnavailableError(GatewayError):
    """Raised when a backing service needed by the request is down."""

    def __init__(
        self,
        message: str = "Service Unavailable",
        error_code: str | ErrorKind = ErrorKind.SERVICE_UNAVAILABLE,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.HIGH, context, cause)


class MalformedAddressError(GatewayError):
    """Raised when an address or CIDR cannot be parsed.

    This signals a configuration or logic bug upstream (a bad trusted range
    or a non-IPv6 value on the IPv6 path), so it is propagated rather than
    treated as user input.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            ErrorKind.INTERNAL_ERROR, message, Severity.HIGH, context, cause
        )


class CounterStoreError(ServiceUnavailableError):
    """Raised when the rate counter store cannot be reached or times out."""

    def __init__(
        self,
        message: str = "Counter Store Unavailable",
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, context=context, cause=cause)


class PayloadTooLargeError(GatewayError):
    """Raised when a request body exceeds the configured size limit."""

    def __init__(
        self,
        message: str = "Payload Too Large",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(ErrorKind.PAYLOAD_TOO_LARGE, message, Severity.LOW, context)
