"""Client fingerprint middleware.

Computes the header fingerprint once per request and makes it available as
``request.state.fingerprint`` (the ``trace.hash`` of every response), in the
request context and in the Loguru context.
"""

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from neacore.core.context import RequestContext
from neacore.security.fingerprint import generate_fingerprint


class FingerprintMiddleware(BaseHTTPMiddleware):
    """Attach the client fingerprint to the request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Fingerprint the request and continue.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: The downstream response, unchanged.
        """
        fingerprint = generate_fingerprint(request.headers)
        request.state.fingerprint = fingerprint
        RequestContext.set_fingerprint(fingerprint)

        with logger.contextualize(fingerprint=fingerprint):
            return await call_next(request)
