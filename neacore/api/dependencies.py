"""Route dependencies implementing the per-request gateway checks.

Routes compose these in the order they must run, for example::

    APIRouter(dependencies=[
        Depends(enforce_rate_limit),
        Depends(verify_client_session),
        Depends(require_signature),
    ])

``get_payload`` parses the request once into a ``RequestPayload`` and caches
it on ``request.state``; every other dependency reads the same containers, so
values sanitized by the validator are what the route handler sees.
"""

import hmac
import json
from collections.abc import Awaitable, Callable
from typing import Annotated, Any

from fastapi import Depends, Request
from loguru import logger
from starlette.datastructures import UploadFile

from neacore.api.constants import (
    FORM_CONTENT_TYPES,
    JSON_CONTENT_TYPES,
    REQUEST_BODY_METHODS,
)
from neacore.core.config import get_settings
from neacore.core.exceptions import (
    BadRequestError,
    PayloadTooLargeError,
    ServiceUnavailableError,
    UnauthorizedError,
    ValidationFailedError,
)
from neacore.security.rate_limiter import RateLimiter, resolve_client_identity
from neacore.security.signature import resolve_client_auth, verify_signature
from neacore.validation.rules import RuleSet
from neacore.validation.validator import RepeatedValues, RequestPayload, run_validation


def collect_pairs(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    """Build a JSON object keeping every value of a repeated key.

    Used as ``object_pairs_hook``; a key seen more than once maps to a
    ``RepeatedValues`` list in source order.
    """
    result: dict[str, Any] = {}
    for key, value in pairs:
        if key not in result:
            result[key] = value
            continue
        existing = result[key]
        if isinstance(existing, RepeatedValues):
            existing.append(value)
        else:
            result[key] = RepeatedValues([existing, value])
    return result


def parse_query(request: Request) -> dict[str, Any]:
    """Parse query parameters; a repeated key maps to a list of its values."""
    query: dict[str, Any] = {}
    for key, value in request.query_params.multi_items():
        if key not in query:
            query[key] = value
        elif isinstance(query[key], list):
            query[key].append(value)
        else:
            query[key] = [query[key], value]
    return query


def _content_type(request: Request) -> str:
    return request.headers.get("content-type", "").split(";")[0].strip().lower()


async def _read_body(request: Request, max_bytes: int) -> bytes:
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > max_bytes:
        raise PayloadTooLargeError(context={"content_length": int(declared)})

    raw = await request.body()
    if len(raw) > max_bytes:
        raise PayloadTooLargeError(context={"content_length": len(raw)})
    return raw


def parse_json_body(raw: bytes) -> dict[str, Any]:
    """Decode a JSON object body, keeping repeated keys.

    Raises:
        BadRequestError: If the body is not valid JSON or not an object.
    """
    if not raw.strip():
        return {}
    try:
        decoded = json.loads(raw, object_pairs_hook=collect_pairs)
    except ValueError as e:
        raise BadRequestError("Malformed JSON Body", cause=e) from e
    if not isinstance(decoded, dict):
        raise BadRequestError("JSON Body Must Be An Object")
    return decoded


async def parse_form_body(request: Request) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split a form body into plain fields and uploaded files.

    Returns:
        tuple[dict[str, Any], dict[str, Any]]: ``(body, files)``; repeated
            plain fields map to ``RepeatedValues``.
    """
    form = await request.form()
    body: dict[str, Any] = {}
    files: dict[str, Any] = {}
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if key in files:
                previous = files[key]
                files[key] = [*previous, value] if isinstance(previous, list) else [previous, value]
            else:
                files[key] = value
        elif key in body:
            body.update(collect_pairs([(key, body[key]), (key, value)]))
        else:
            body[key] = value
    return body, files


async def get_payload(request: Request) -> RequestPayload:
    """Parse the request into validator containers, once per request.

    Args:
        request: The incoming request.

    Returns:
        RequestPayload: body, query, params, files and the raw body.

    Raises:
        PayloadTooLargeError: If the body exceeds ``max_body_bytes``.
        BadRequestError: If a JSON body cannot be decoded.
    """
    cached = getattr(request.state, "payload", None)
    if isinstance(cached, RequestPayload):
        return cached

    payload = RequestPayload(query=parse_query(request), params=dict(request.path_params))

    if request.method in REQUEST_BODY_METHODS:
        content_type = _content_type(request)
        raw = await _read_body(request, get_settings().max_body_bytes)

        if content_type in JSON_CONTENT_TYPES:
            payload.body = parse_json_body(raw)
            payload.raw_body = raw
        elif content_type in FORM_CONTENT_TYPES:
            payload.body, payload.files = await parse_form_body(request)
            if content_type == "application/x-www-form-urlencoded":
                payload.raw_body = raw
        elif raw:
            logger.debug("Ignoring body with unsupported content type", content_type=content_type)

    request.state.payload = payload
    return payload


Payload = Annotated[RequestPayload, Depends(get_payload)]


def validate_input(rule_set: RuleSet) -> Callable[..., Awaitable[None]]:
    """Create a dependency that validates the request against ``rule_set``.

    Args:
        rule_set: Field rules for the route.

    Returns:
        Callable[..., Awaitable[None]]: Dependency raising
            ``ValidationFailedError`` with every issue found.
    """

    async def dependency(payload: Payload) -> None:
        issues = run_validation(payload, rule_set)
        if issues:
            raise ValidationFailedError([issue.to_dict() for issue in issues])

    return dependency


async def enforce_rate_limit(request: Request) -> None:
    """Count the request against its client's window and check the peer is trusted.

    Raises:
        ServiceUnavailableError: If the limiter has not been started.
        RateLimitExceededError: If the client is over its limit.
        ForbiddenError: If the peer is neither loopback nor a trusted proxy.
    """
    limiter: RateLimiter | None = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        raise ServiceUnavailableError("Rate Limiter Not Ready")

    config = get_settings().rate_limit_config
    connection_ip = request.client.host if request.client else None
    client_identity = resolve_client_identity(
        request.headers.get(config.client_ip_header), connection_ip
    )
    await limiter.admit(client_identity, connection_ip)


async def verify_client_session(request: Request, payload: Payload) -> None:
    """Identify the client by its secret credential.

    The secret is looked up in header, query, then body, and must match one
    of the configured client secrets. The client id is stored on
    ``request.state.client_id``.

    Raises:
        UnauthorizedError: If the secret is missing or unknown.
    """
    secret_key = get_settings().signature_config.secret_key
    # Session credentials prefer the query string over the body.
    secret = resolve_client_auth(secret_key, request.headers, payload.query, payload.body)
    if not secret:
        raise UnauthorizedError("Client Secret Missing")

    for client_id, client_secret in get_settings().signature_config.client_secrets.items():
        if hmac.compare_digest(client_secret.encode(), secret.encode()):
            request.state.client_id = client_id
            return

    raise UnauthorizedError("Unknown Client")


async def require_signature(request: Request, payload: Payload) -> None:
    """Verify the request signature (once per request).

    Raises:
        UnauthorizedError: If no signature was sent.
        ForbiddenError: If no secret was sent or the signature does not match.
    """
    verify_signature(request, payload)
