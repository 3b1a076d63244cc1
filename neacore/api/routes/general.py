"""Rate limited endpoints with per-route signature checks."""

from typing import Any

from fastapi import APIRouter, Depends, Request

from neacore.api.dependencies import (
    Payload,
    enforce_rate_limit,
    require_signature,
    validate_input,
)
from neacore.api.rules import GLOBAL_RULES
from neacore.api.utils.responses import ORJSONResponse, success_response

router = APIRouter(
    prefix="/api/general",
    tags=["general"],
    dependencies=[Depends(enforce_rate_limit)],
)


@router.get("/1")
async def get_general_1(request: Request) -> ORJSONResponse:
    """Return an empty object."""
    return success_response(request, {}, "Example1 endpoint works")


@router.get("/2", dependencies=[Depends(require_signature)])
async def get_general_2(request: Request) -> ORJSONResponse:
    """Return no data once the signature checks out."""
    return success_response(request, None, "Example2 endpoint works")


@router.post(
    "/3",
    dependencies=[
        Depends(require_signature),
        Depends(validate_input(GLOBAL_RULES)),
    ],
)
async def post_general_3(request: Request, payload: Payload) -> ORJSONResponse:
    """Echo the signed, validated body."""
    data: dict[str, Any] = dict(payload.body)
    return success_response(request, data, "Example3 endpoint works")
