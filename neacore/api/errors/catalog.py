"""Problem-detail definitions for every error kind.

Each ``ErrorKind`` maps to a fixed status, title, detail and solution. The
``type`` of a problem document is the documentation URL of its kind,
``{error_base_url}/{kind}``, which is served by the ``/errors`` route.
"""

from dataclasses import dataclass
from typing import Any, Final

from neacore.core.config import get_settings
from neacore.core.exceptions import ErrorKind


@dataclass(frozen=True, slots=True)
class ErrorDefinition:
    """Static description of one error kind."""

    status: int
    title: str
    detail: str
    solution: str


ERROR_CATALOG: Final[dict[ErrorKind, ErrorDefinition]] = {
    ErrorKind.UNKNOWN_ERROR: ErrorDefinition(
        400,
        "Unknown Error",
        "An unknown error occurred.",
        "Please try again later or contact support.",
    ),
    ErrorKind.BAD_REQUEST: ErrorDefinition(
        400,
        "Bad Request",
        "The request was invalid.",
        "Check and correct your API request according to the documentation.",
    ),
    ErrorKind.MISSING_PARAMETER: ErrorDefinition(
        400,
        "Missing Parameter",
        "A required parameter is missing from the request.",
        "Ensure all required parameters are included in the request.",
    ),
    ErrorKind.VERIFICATION_FAILED: ErrorDefinition(
        400,
        "Verification Failed",
        "The request could not be verified.",
        "Check the request signature or authentication details.",
    ),
    ErrorKind.UNAUTHORIZED: ErrorDefinition(
        401,
        "Unauthorized",
        "Authentication is required or invalid.",
        "Log in with valid credentials or obtain an API key.",
    ),
    ErrorKind.FORBIDDEN: ErrorDefinition(
        403,
        "Forbidden",
        "You do not have permission to access this resource.",
        "Request access or contact administrator.",
    ),
    ErrorKind.NOT_FOUND: ErrorDefinition(
        404,
        "Resource Not Found",
        "The requested resource could not be found.",
        "Verify the endpoint or resource ID.",
    ),
    ErrorKind.METHOD_NOT_ALLOWED: ErrorDefinition(
        405,
        "Method Not Allowed",
        "The HTTP method is not allowed for this endpoint.",
        "Check the API documentation for allowed methods.",
    ),
    ErrorKind.NOT_ACCEPTABLE: ErrorDefinition(
        406,
        "Not Acceptable",
        "The requested resource is not available in the requested format.",
        "Check the Accept header and try again.",
    ),
    ErrorKind.CONFLICT: ErrorDefinition(
        409,
        "Conflict",
        "A conflict occurred with the current state of the resource.",
        "Review resource state and retry the request.",
    ),
    ErrorKind.PAYLOAD_TOO_LARGE: ErrorDefinition(
        413,
        "Payload Too Large",
        "The request payload is too large.",
        "Reduce the size of the request payload and try again.",
    ),
    ErrorKind.VALIDATION_ERROR: ErrorDefinition(
        422,
        "Validation Failed",
        "Input validation failed.",
        "Please check and correct all required fields.",
    ),
    ErrorKind.RATE_LIMIT_EXCEEDED: ErrorDefinition(
        429,
        "Too Many Requests",
        "Too many requests. Rate limit exceeded.",
        "Wait and try again later.",
    ),
    ErrorKind.INTERNAL_ERROR: ErrorDefinition(
        500,
        "Internal Server Error",
        "An unexpected error occurred on the server.",
        "Try again later or contact support.",
    ),
    ErrorKind.NOT_IMPLEMENTED: ErrorDefinition(
        501,
        "Not Implemented",
        "This endpoint is not implemented.",
        "Refer to the API documentation or contact support.",
    ),
    ErrorKind.SERVICE_UNAVAILABLE: ErrorDefinition(
        503,
        "Service Unavailable",
        "The service is temporarily unavailable.",
        "Try again later.",
    ),
}

# Status codes raised by the framework itself (routing, body limits)
STATUS_TO_KIND: Final[dict[int, ErrorKind]] = {
    400: ErrorKind.BAD_REQUEST,
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    405: ErrorKind.METHOD_NOT_ALLOWED,
    406: ErrorKind.NOT_ACCEPTABLE,
    409: ErrorKind.CONFLICT,
    413: ErrorKind.PAYLOAD_TOO_LARGE,
    422: ErrorKind.VALIDATION_ERROR,
    429: ErrorKind.RATE_LIMIT_EXCEEDED,
    501: ErrorKind.NOT_IMPLEMENTED,
    503: ErrorKind.SERVICE_UNAVAILABLE,
}


def resolve_kind(kind: str | ErrorKind) -> ErrorKind:
    """Map an identifier to its ErrorKind, falling back to UNKNOWN_ERROR."""
    if isinstance(kind, ErrorKind):
        return kind
    try:
        return ErrorKind(kind)
    except ValueError:
        return ErrorKind.UNKNOWN_ERROR


def kind_for_status(status_code: int) -> ErrorKind:
    """Map an HTTP status raised by the framework to an ErrorKind."""
    if status_code in STATUS_TO_KIND:
        return STATUS_TO_KIND[status_code]
    if status_code >= 500:
        return ErrorKind.INTERNAL_ERROR
    return ErrorKind.UNKNOWN_ERROR


def error_type_url(kind: ErrorKind) -> str:
    """Return the documentation URL of ``kind``."""
    return f"{get_settings().error_base_url}/{kind.value}"


def build_problem(
    kind: str | ErrorKind,
    instance: str,
    errors: Any = None,  # noqa: ANN401 - validation lists or check summaries
) -> dict[str, Any]:
    """Build the problem-detail fields for ``kind``.

    Args:
        kind: Error identifier; unknown identifiers render as unknown_error.
        instance: Path (and query) of the request that failed.
        errors: Structured detail such as the validation issue list.

    Returns:
        dict[str, Any]: ``status, type, title, detail, instance`` and, when
            given, ``errors``.
    """
    resolved = resolve_kind(kind)
    definition = ERROR_CATALOG[resolved]
    problem: dict[str, Any] = {
        "status": definition.status,
        "type": error_type_url(resolved),
        "title": definition.title,
        "detail": definition.detail,
        "instance": instance,
    }
    if errors is not None:
        problem["errors"] = errors
    return problem
