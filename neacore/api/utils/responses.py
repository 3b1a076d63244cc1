"""JSON responses for the gateway envelope, serialized with orjson.

The ORJSONResponse class is the default response class of the application.
``success_response`` and ``error_response`` build the two envelope shapes,
both carrying the request ``trace``; they are used by routes, exception
handlers and middleware that must answer without reaching a route.
"""

import time
from datetime import UTC, datetime
from typing import Any

import orjson
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.requests import Request

from neacore.api.errors.catalog import build_problem
from neacore.api.schemas.responses import ProblemResponse, SuccessResponse, Trace
from neacore.core.constants import MILLISECONDS_PER_SECOND
from neacore.core.exceptions import ErrorKind


class ORJSONResponse(JSONResponse):
    """FastAPI Response class using orjson for JSON serialization.

    Attributes:
        media_type: The media type for the response.
    """

    media_type = "application/json"

    def render(self, content: Any) -> bytes:  # noqa: ANN401 - accepts any JSON-serializable content
        """Render the content as JSON using orjson.

        Args:
            content: The content to serialize to JSON.

        Returns:
            bytes: The JSON-encoded bytes.
        """
        if isinstance(content, BaseModel):
            content = content.model_dump(mode="json", by_alias=True)

        return orjson.dumps(content, option=orjson.OPT_NON_STR_KEYS)


def request_instance(request: Request) -> str:
    """Return the request path with its query string, as sent."""
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def format_response_time(request: Request) -> str:
    """Format the time since the request entered the middleware stack."""
    started_at = getattr(request.state, "started_at", None)
    if started_at is None:
        return "0.000ms"
    elapsed_ms = (time.perf_counter() - started_at) * MILLISECONDS_PER_SECOND
    return f"{elapsed_ms:.3f}ms"


def build_trace(request: Request) -> Trace:
    """Build the trace block for ``request``."""
    return Trace(
        method=request.method,
        hash=getattr(request.state, "fingerprint", None) or "unknown",
        path=request_instance(request),
        timestamp=datetime.now(UTC).isoformat(),
        response_time=format_response_time(request),
    )


def success_response(
    request: Request,
    data: Any = None,  # noqa: ANN401 - endpoint payloads are arbitrary JSON
    message: str = "OK",
    status_code: int = 200,
) -> ORJSONResponse:
    """Build a success envelope.

    Args:
        request: The request being answered.
        data: Endpoint payload.
        message: Human-readable outcome.
        status_code: HTTP status code.

    Returns:
        ORJSONResponse: ``{status, message, data, trace}``.
    """
    body = SuccessResponse(
        status=status_code, message=message, data=data, trace=build_trace(request)
    )
    return ORJSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True),
    )


def error_response(
    request: Request,
    kind: str | ErrorKind,
    errors: Any = None,  # noqa: ANN401 - validation lists or check summaries
    message: str | None = None,
    headers: dict[str, str] | None = None,
) -> ORJSONResponse:
    """Build a problem-detail envelope for an error kind.

    Args:
        request: The request being answered.
        kind: Error identifier; unknown identifiers render as unknown_error.
        errors: Structured detail such as the validation issue list.
        message: Stable, client-safe reason for gateway errors.
        headers: Extra response headers.

    Returns:
        ORJSONResponse: ``{status, type, title, detail, instance, errors, trace}``.
    """
    problem = ProblemResponse(
        **build_problem(kind, request_instance(request), errors),
        message=message,
        trace=build_trace(request),
    )
    content = problem.model_dump(mode="json", by_alias=True)
    for optional in ("errors", "message"):
        if content[optional] is None:
            del content[optional]

    return ORJSONResponse(
        status_code=problem.status,
        content=content,
        headers=headers,
    )
