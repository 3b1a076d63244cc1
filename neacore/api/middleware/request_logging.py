"""HTTP request/response logging with timing.

Every request not excluded by configuration is logged twice, when it starts
and when it completes, with the request ID, method, path and client address
bound to the Loguru context so log lines emitted while handling it carry the
same fields. Requests slower than the configured threshold get an extra
warning.

The client address is the trusted proxy's client IP header when present,
the connection peer otherwise; the same identity the rate limiter uses.
"""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from neacore.api.constants import MAX_USER_AGENT_LENGTH, REQUEST_ID_HEADER
from neacore.core.config import LogConfig, get_settings
from neacore.core.constants import MILLISECONDS_PER_SECOND
from neacore.core.context import generate_request_id
from neacore.core.error_context import sanitize_dict, sanitize_headers
from neacore.security.rate_limiter import resolve_client_identity


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests and responses.

    Args:
        app: The ASGI application.
        log_config: Logging configuration.
    """

    def __init__(self, app: ASGIApp, *, log_config: LogConfig) -> None:
        super().__init__(app)
        self.log_config = log_config
        self.excluded_paths = set(log_config.excluded_paths)
        self.client_ip_header = get_settings().rate_limit_config.client_ip_header

    def _get_client_ip(self, request: Request) -> str:
        """Extract the client address the way the rate limiter does."""
        connection_ip = request.client.host if request.client else None
        return (
            resolve_client_identity(
                request.headers.get(self.client_ip_header), connection_ip
            )
            or "unknown"
        )

    def _get_user_agent(self, request: Request) -> str:
        """Extract the user agent, truncated to keep log lines bounded."""
        ua = request.headers.get("user-agent", "")
        return ua[:MAX_USER_AGENT_LENGTH] if ua else "unknown"

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process the request and log details.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: The response from the application.

        Raises:
            Exception: Any exception raised by the application is re-raised
                after logging.
        """
        if request.url.path in self.excluded_paths:
            return await call_next(request)

        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()

        with logger.contextualize(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_host=self._get_client_ip(request),
            user_agent=self._get_user_agent(request),
        ):
            logger.info(
                "Request started",
                query_params=(
                    sanitize_dict(dict(request.query_params))
                    if request.query_params
                    else None
                ),
            )
            logger.debug("Request headers", headers=sanitize_headers(dict(request.headers)))

            start_time = time.perf_counter()

            try:
                response = await call_next(request)
            except Exception as exc:
                duration_ms = (time.perf_counter() - start_time) * MILLISECONDS_PER_SECOND
                logger.error(
                    "Request failed",
                    duration_ms=round(duration_ms, 2),
                    error_type=type(exc).__name__,
                )
                raise

            duration_ms = (time.perf_counter() - start_time) * MILLISECONDS_PER_SECOND

            logger.info(
                "Request completed",
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

            response.headers[REQUEST_ID_HEADER] = request_id

            if duration_ms > self.log_config.slow_request_threshold_ms:
                logger.warning(
                    "Slow request detected",
                    duration_ms=round(duration_ms, 2),
                    threshold_ms=self.log_config.slow_request_threshold_ms,
                )

            return response
