"""Cross-origin resource sharing policy enforcement.

Browser requests carry an ``Origin`` header that is checked against the
configured policy:

- wildcard (``*``): any origin is allowed; the origin is echoed instead of
  ``*`` when credentials are enabled, since browsers reject ``*`` then
- explicit list: the origin must be listed and is echoed back
- anything else is answered with a ``forbidden`` problem response

Allowed requests get the ``Access-Control-*`` headers and ``Vary: Origin``.
Preflight (``OPTIONS``) requests are answered directly with the configured
status. Requests without an ``Origin`` header (probes, server-to-server
calls) are not subject to CORS and pass through unchanged.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from neacore.api.constants import ORIGIN_HEADER
from neacore.api.utils.responses import error_response
from neacore.core.config import CorsConfig
from neacore.core.exceptions import ErrorKind


class CorsMiddleware(BaseHTTPMiddleware):
    """Enforce the configured CORS policy.

    Args:
        app: The ASGI application.
        cors_config: CORS policy.
    """

    def __init__(self, app: ASGIApp, *, cors_config: CorsConfig) -> None:
        super().__init__(app)
        self.config = cors_config
        self.allowed_origins = frozenset(cors_config.allowed_origin_list)

    def resolve_allow_origin(self, origin: str) -> str | None:
        """Return the ``Access-Control-Allow-Origin`` value, or None to reject."""
        if self.config.allow_all_origins:
            return origin if self.config.credentials else "*"
        if origin in self.allowed_origins:
            return origin
        return None

    def cors_headers(self, allow_origin: str) -> dict[str, str]:
        """Build the CORS headers for an allowed origin."""
        headers = {
            "Access-Control-Allow-Origin": allow_origin,
            "Access-Control-Allow-Headers": ",".join(self.config.allowed_header_list),
            "Access-Control-Allow-Methods": ",".join(self.config.method_list),
            "Vary": "Origin",
        }
        if self.config.credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        if self.config.max_age:
            headers["Access-Control-Max-Age"] = str(self.config.max_age)
        if self.config.exposed_header_list:
            headers["Access-Control-Expose-Headers"] = ",".join(
                self.config.exposed_header_list
            )
        return headers

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Apply the policy to one request.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: The downstream response with CORS headers, a preflight
                answer, or a forbidden problem response.
        """
        origin = request.headers.get(ORIGIN_HEADER)
        if not origin:
            return await call_next(request)

        allow_origin = self.resolve_allow_origin(origin)
        if allow_origin is None:
            return error_response(
                request, ErrorKind.FORBIDDEN, message="Origin Not Allowed"
            )

        headers = self.cors_headers(allow_origin)

        if request.method == "OPTIONS":
            return Response(status_code=self.config.options_success_status, headers=headers)

        response = await call_next(request)
        response.headers.update(headers)
        return response
