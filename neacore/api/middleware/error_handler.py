"""Global exception handlers for the FastAPI application.

Every exception that escapes a route or dependency is turned into a
problem-detail response from the error catalog. Clients only ever see the
catalog text for the error kind, plus the stable message of gateway errors
("Signature Missing", "Invalid Signature"...). Internal exception text stays
in the logs, after sensitive values are redacted.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from loguru import logger
from starlette.exceptions import HTTPException

from neacore.api.errors.catalog import kind_for_status
from neacore.api.utils.responses import error_response
from neacore.core.context import RequestContext
from neacore.core.error_context import sanitize_error_context
from neacore.core.exceptions import ErrorKind, GatewayError, ValidationFailedError


async def gateway_error_handler(request: Request, exc: Exception) -> Response:
    """Handle GatewayError exceptions.

    Args:
        request: The request that caused the exception
        exc: The GatewayError exception to handle

    Returns:
        Response: Problem response for the error's kind

    Raises:
        TypeError: If exc is not a GatewayError instance
    """
    if not isinstance(exc, GatewayError):
        raise TypeError(f"Expected GatewayError, got {type(exc).__name__}")

    error_context = sanitize_error_context(
        exc,
        {
            "request_method": request.method,
            "request_path": str(request.url.path),
            "error_code": exc.error_code,
            "severity": exc.severity.value,
            "error_fingerprint": exc.fingerprint,
            "correlation_id": RequestContext.get_correlation_id(),
            "fingerprint": RequestContext.get_fingerprint(),
            **exc.context,
        },
    )

    log = logger.error if exc.should_alert else logger.warning
    log(
        "Handling {}: {}",
        type(exc).__name__,
        exc.message,
        **error_context,
    )

    errors = exc.issues if isinstance(exc, ValidationFailedError) else None
    # Internal errors carry diagnostic text that stays in the logs
    message = None if exc.kind is ErrorKind.INTERNAL_ERROR else exc.message
    return error_response(request, exc.kind, errors=errors, message=message)


async def validation_error_handler(request: Request, exc: Exception) -> Response:
    """Handle FastAPI RequestValidationError exceptions.

    Routes declare no Pydantic body models, so this is only reached when a
    request cannot be decoded at all; it is reported as bad_request.

    Args:
        request: The request that caused the exception
        exc: The RequestValidationError exception to handle

    Returns:
        Response: bad_request problem response

    Raises:
        TypeError: If exc is not a RequestValidationError instance
    """
    if not isinstance(exc, RequestValidationError):
        raise TypeError(f"Expected RequestValidationError, got {type(exc).__name__}")

    logger.warning(
        "Request could not be decoded",
        path=str(request.url.path),
        method=request.method,
        error_count=len(exc.errors()),
    )

    return error_response(request, ErrorKind.BAD_REQUEST)


async def http_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle Starlette HTTPException (unknown routes, wrong methods...).

    Args:
        request: The request that caused the exception
        exc: The HTTPException to handle

    Returns:
        Response: Problem response for the matching error kind

    Raises:
        TypeError: If exc is not an HTTPException instance
    """
    if not isinstance(exc, HTTPException):
        raise TypeError(f"Expected HTTPException, got {type(exc).__name__}")

    kind = kind_for_status(exc.status_code)

    logger.warning(
        "HTTP exception",
        status=exc.status_code,
        method=request.method,
        path=str(request.url.path),
        error_kind=kind.value,
    )

    return error_response(request, kind, headers=exc.headers)


async def generic_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle any other exception as internal_error.

    Args:
        request: The request that caused the exception
        exc: The unhandled exception

    Returns:
        Response: internal_error problem response without exception details
    """
    error_context = sanitize_error_context(
        exc,
        {
            "request_method": request.method,
            "request_path": str(request.url.path),
            "correlation_id": RequestContext.get_correlation_id(),
            "fingerprint": RequestContext.get_fingerprint(),
        },
    )

    logger.opt(exception=exc).error(
        "Unhandled exception: {}",
        type(exc).__name__,
        **error_context,
    )

    return error_response(request, ErrorKind.INTERNAL_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers registered")
