"""Human-readable documentation pages for error kinds."""

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from neacore.api.errors.render import render_error_page
from neacore.api.utils.responses import request_instance

router = APIRouter(prefix="/errors", tags=["errors"])


@router.get("/{error_key}", response_class=HTMLResponse)
async def error_page(request: Request, error_key: str) -> HTMLResponse:
    """Render the documentation page for ``error_key``.

    Unknown keys render the ``unknown_error`` page.
    """
    return HTMLResponse(render_error_page(error_key, request_instance(request)))
