"""Request context middleware for correlation and timing.

This module implements middleware that manages request correlation IDs and
records when each request entered the gateway, so every response envelope can
report its handling time.

Key features:
- **Correlation ID propagation**: Extracts or generates unique IDs per request
- **Context variables**: Uses Python contextvars for async-safe propagation
- **Loguru integration**: Binds the correlation ID to all logs of the request
- **Response headers**: Echoes the correlation ID back to the client
"""

import time

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from neacore.api.constants import CORRELATION_ID_HEADER
from neacore.core.context import RequestContext, generate_correlation_id


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to manage request context and correlation IDs.

    This middleware:
    - Stamps ``request.state.started_at`` for response timing
    - Generates or extracts correlation IDs
    - Sets them in contextvars and binds them to Loguru
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process the request with context management.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: Response with correlation ID header.
        """
        request.state.started_at = time.perf_counter()

        correlation_id = (
            request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        )
        request.state.correlation_id = correlation_id
        RequestContext.set_correlation_id(correlation_id)

        with logger.contextualize(correlation_id=correlation_id):
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response
