"""Shared-secret request signatures.

Clients sign a request by sending two credentials, ``x-signature`` and
``x-secret`` by default, as headers, body fields or query parameters. The
signature is::

    sha256(canonical_string + secret).hexdigest()

where the canonical string is built from the merged query and body
parameters (body wins on key collision), minus the two credentials, sorted
by key and rendered as ``key=value`` pairs joined by ``&``. Values render as
the JavaScript clients render them: lists as ``Array.join(",")``, objects as
``JSON.stringify`` output, and numbers in JavaScript notation (``10`` for
``10.0``, ``1e-7`` for ``1e-07``).

The secret is appended to the message rather than used as an HMAC key.
Existing clients compute signatures this way, so the construction must not
change.
"""

import hashlib
import hmac
import math
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Final

import orjson
from loguru import logger
from starlette.requests import Request

from neacore.core.config import get_settings
from neacore.core.exceptions import ForbiddenError, UnauthorizedError
from neacore.validation.validator import RequestPayload

SIGNATURE_MISSING: Final[str] = "Signature Missing"
SECRET_MISSING: Final[str] = "Secret Missing"
INVALID_SIGNATURE: Final[str] = "Invalid Signature"

# Decimal exponent from which JavaScript switches to exponent notation
JS_EXPONENT_THRESHOLD: Final[int] = 21


def resolve_client_auth(
    parameter: str,
    headers: Mapping[str, str],
    body: Mapping[str, Any],
    query: Mapping[str, Any],
) -> str | None:
    """Find a credential in headers, then body, then query.

    Args:
        parameter: Credential name, used as header name and field name.
        headers: Request headers (case-insensitive lookup expected).
        body: Parsed request body.
        query: Parsed query parameters.

    Returns:
        str | None: The first non-empty value found, or None.
    """
    for source in (headers, body, query):
        value = source.get(parameter)
        if value:
            return str(value)
    return None


def format_number(value: float) -> str:
    """Render a float the way JavaScript's ``String(number)`` does.

    Examples:
        >>> format_number(10.0)
        '10'
        >>> format_number(1e-07)
        '1e-7'
        >>> format_number(1.5e+21)
        '1.5e+21'
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    # repr gives the shortest round-tripping digits
    _, digit_tuple, exponent = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(map(str, digit_tuple))
    k = len(digits)
    n = k + int(exponent)

    if k <= n <= JS_EXPONENT_THRESHOLD:
        text = digits + "0" * (n - k)
    elif 0 < n <= JS_EXPONENT_THRESHOLD:
        text = f"{digits[:n]}.{digits[n:]}"
    elif -6 < n <= 0:
        text = f"0.{'0' * -n}{digits}"
    else:
        power = n - 1
        mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
        text = f"{mantissa}e{'+' if power >= 0 else '-'}{abs(power)}"
    return sign + text


def _json_ready(value: Any) -> Any:  # noqa: ANN401 - request values are untyped
    """Prepare a nested value so orjson writes numbers as ``JSON.stringify`` does."""
    if isinstance(value, Mapping):
        return {key: _json_ready(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_json_ready(item) for item in value]
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return orjson.Fragment(format_number(value))
    return value


def _render_scalar(value: Any) -> str:  # noqa: ANN401 - request values are untyped
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return format_number(value)
    return str(value)


def _render_item(item: Any) -> str:  # noqa: ANN401 - request values are untyped
    """Render one element the way ``Array.prototype.join`` does."""
    if item is None:
        return ""
    if isinstance(item, list | tuple):
        return ",".join(_render_item(inner) for inner in item)
    if isinstance(item, Mapping):
        return "[object Object]"
    return _render_scalar(item)


def _render_value(value: Any) -> str:  # noqa: ANN401 - request values are untyped
    if isinstance(value, list | tuple):
        return _render_item(value)
    if isinstance(value, Mapping):
        return orjson.dumps(_json_ready(value)).decode()
    return _render_scalar(value)


def build_data_string(
    query: Mapping[str, Any],
    body: Mapping[str, Any],
    exclude: tuple[str, ...] = ("x-secret", "x-signature"),
) -> str:
    """Build the canonical string that is signed.

    Args:
        query: Parsed query parameters.
        body: Parsed request body; overrides query keys.
        exclude: Credential keys left out of the string.

    Returns:
        str: ``key=value`` pairs sorted by key and joined by ``&``, or an empty
            string when no parameters remain.

    Examples:
        >>> build_data_string({}, {"name": "Test"})
        'name=Test'
        >>> build_data_string({"b": "2", "a": ["x", "y"]}, {})
        'a=x,y&b=2'
    """
    combined = {**query, **body}
    for key in exclude:
        combined.pop(key, None)
    return "&".join(f"{key}={_render_value(combined[key])}" for key in sorted(combined))


def generate_hash(data: str, secret: str) -> str:
    """Return the lowercase hex SHA-256 of ``data`` followed by ``secret``."""
    return hashlib.sha256(f"{data}{secret}".encode()).hexdigest()


def check_signature(
    headers: Mapping[str, str],
    payload: RequestPayload,
    *,
    signature_key: str,
    secret_key: str,
) -> None:
    """Verify the signature credentials of one request.

    Args:
        headers: Request headers.
        payload: Parsed request containers.
        signature_key: Name of the signature credential.
        secret_key: Name of the secret credential.

    Raises:
        UnauthorizedError: If no signature was sent.
        ForbiddenError: If no secret was sent or the signature does not match.
    """
    signature = resolve_client_auth(signature_key, headers, payload.body, payload.query)
    if not signature:
        raise UnauthorizedError(SIGNATURE_MISSING)

    secret = resolve_client_auth(secret_key, headers, payload.body, payload.query)
    if not secret:
        raise ForbiddenError(SECRET_MISSING)

    data_string = build_data_string(
        payload.query, payload.body, exclude=(secret_key, signature_key)
    )
    expected = generate_hash(data_string, secret)

    if not hmac.compare_digest(expected.encode(), signature.encode()):
        logger.debug("Signature mismatch", canonical_length=len(data_string))
        raise ForbiddenError(INVALID_SIGNATURE)


def verify_signature(request: Request, payload: RequestPayload) -> None:
    """Verify a request's signature once per request.

    The outcome is remembered on ``request.state.signature_checked``, so a
    route that applies the check more than once only pays for it once.

    Args:
        request: The incoming request.
        payload: Parsed request containers of ``request``.

    Raises:
        UnauthorizedError: If no signature was sent.
        ForbiddenError: If no secret was sent or the signature does not match.
    """
    if getattr(request.state, "signature_checked", False):
        return

    config = get_settings().signature_config
    check_signature(
        request.headers,
        payload,
        signature_key=config.signature_key,
        secret_key=config.secret_key,
    )
    request.state.signature_checked = True
