"""Example endpoints.

The same three endpoints are mounted twice: unguarded under ``/api/example``
and behind the full gateway checks under ``/api/secure``. The router factory
takes the guard dependencies so each mount gets its own router.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.params import Depends as DependsParam

from neacore.api.dependencies import Payload, validate_input
from neacore.api.rules import GLOBAL_RULES
from neacore.api.utils.responses import ORJSONResponse, success_response


def build_example_router(*guards: DependsParam, prefix: str = "/api/example") -> APIRouter:
    """Create the example router.

    Args:
        *guards: Dependencies run, in order, before every endpoint.
        prefix: Mount prefix.

    Returns:
        APIRouter: Router exposing ``/1``, ``/2`` and ``/3``.
    """
    router = APIRouter(prefix=prefix, tags=["example"], dependencies=list(guards))

    @router.get("/1")
    async def get_example_1(request: Request) -> ORJSONResponse:
        """Return an empty object."""
        return success_response(request, {}, "Example1 endpoint works")

    @router.get("/2")
    async def get_example_2(request: Request) -> ORJSONResponse:
        """Return no data."""
        return success_response(request, None, "Example2 endpoint works")

    @router.post("/3", dependencies=[Depends(validate_input(GLOBAL_RULES))])
    async def post_example_3(request: Request, payload: Payload) -> ORJSONResponse:
        """Echo the validated (and sanitized) body."""
        data: dict[str, Any] = dict(payload.body)
        return success_response(request, data, "Example3 endpoint works")

    return router
