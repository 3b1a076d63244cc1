"""Client fingerprinting from request headers.

The fingerprint is a SHA-256 over a fixed set of headers a browser sends on
every request. It is stable for one client setup and is used to group log
lines and as the ``trace.hash`` of every response envelope. It is not an
authentication factor: every input is client controlled.
"""

import hashlib
from collections.abc import Mapping
from typing import Final

FINGERPRINT_HEADERS: Final[tuple[str, ...]] = (
    "user-agent",
    "accept",
    "accept-language",
    "sec-ch-ua",
)


def generate_fingerprint(headers: Mapping[str, str]) -> str:
    """Hash the fingerprint headers joined by ``|``; missing headers count as empty.

    Args:
        headers: Request headers with lowercase names (Starlette ``Headers``
            is case-insensitive).

    Returns:
        str: Lowercase hex SHA-256 digest.
    """
    raw = "|".join(headers.get(name) or "" for name in FINGERPRINT_HEADERS)
    return hashlib.sha256(raw.encode()).hexdigest()
