"""Fixed-window rate limiting gated by trusted proxy ranges.

Each client identity gets a counter ``rate:<identity>`` whose TTL is the
window length. The first request of a window seeds the counter at 1, later
requests increment it, and once it reaches ``max_requests`` further requests
are rejected until the key expires.

The counter check runs before the trust check, so an over-limit client is
rejected even when it arrives through a trusted proxy. After the counter
check, the connection-level address must be loopback or lie in the current
trusted range set.

If the counter store is unreachable the limiter fails open: the request skips
the counter check and a warning is logged. The trust check still applies.
"""

from typing import Protocol

from loguru import logger

from neacore.core.config import RateLimitConfig
from neacore.core.constants import LOOPBACK_ADDRESSES, RATE_KEY_PREFIX
from neacore.core.exceptions import (
    CounterStoreError,
    ForbiddenError,
    RateLimitExceededError,
)
from neacore.infrastructure.counter_store import CounterStore
from neacore.infrastructure.trusted_ranges import TrustedRangeSet
from neacore.security.cidr import normalize_address

UNTRUSTED_SOURCE = "Untrusted Source"


class TrustedRangeProvider(Protocol):
    """Anything exposing the current trusted range snapshot."""

    @property
    def current(self) -> TrustedRangeSet:
        """The snapshot in effect."""
        ...


def resolve_client_identity(
    forwarded_ip: str | None, connection_ip: str | None
) -> str:
    """Pick the identity a counter is keyed on.

    Args:
        forwarded_ip: Value of the trusted client IP header, if any.
        connection_ip: Connection-level peer address.

    Returns:
        str: First comma-separated entry of the chosen value, trimmed. Empty
            when neither is available.

    Examples:
        >>> resolve_client_identity("203.0.113.7, 10.0.0.1", "173.245.48.1")
        '203.0.113.7'
        >>> resolve_client_identity(None, "198.51.100.2")
        '198.51.100.2'
    """
    raw = forwarded_ip or connection_ip or ""
    return raw.split(",")[0].strip()


def rate_key(client_identity: str) -> str:
    """Return the counter key for a client identity."""
    return f"{RATE_KEY_PREFIX}{client_identity}"


class RateLimiter:
    """Admit or reject requests per client identity.

    Args:
        store: Counter store holding one counter per client identity.
        trusted_ranges: Provider of the current trusted range snapshot.
        max_requests: Requests allowed per window.
        window_seconds: Window length, used as the counter TTL.
    """

    def __init__(
        self,
        store: CounterStore,
        trusted_ranges: TrustedRangeProvider,
        max_requests: int,
        window_seconds: int,
    ) -> None:
        self._store = store
        self._trusted_ranges = trusted_ranges
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    @classmethod
    def from_config(
        cls,
        store: CounterStore,
        trusted_ranges: TrustedRangeProvider,
        config: RateLimitConfig,
    ) -> "RateLimiter":
        """Create a limiter with limits taken from configuration."""
        return cls(store, trusted_ranges, config.max_requests, config.window_seconds)

    async def _count(self, key: str) -> None:
        current = await self._store.get(key)
        if current is None:
            await self._store.set(key, 1, self.window_seconds)
        elif int(current) < self.max_requests:
            await self._store.incr(key)
        else:
            raise RateLimitExceededError(
                context={"key": key, "max_requests": self.max_requests}
            )

    async def admit(self, client_ip: str, remote_ip: str | None) -> None:
        """Run the counter check, then the trust check.

        Args:
            client_ip: Client identity (see ``resolve_client_identity``).
            remote_ip: Connection-level peer address.

        Raises:
            RateLimitExceededError: If the client used up its window.
            ForbiddenError: If the peer is neither loopback nor trusted.
            MalformedAddressError: If the peer address is a malformed IPv6
                literal.
        """
        key = rate_key(client_ip)
        try:
            await self._count(key)
        except CounterStoreError as e:
            logger.warning(
                "Counter store unavailable, admitting request without rate check: {}",
                e.message,
                key=key,
            )

        remote = normalize_address(remote_ip or "")
        if remote in LOOPBACK_ADDRESSES:
            return

        if not remote or not self._trusted_ranges.current.contains(remote):
            raise ForbiddenError(
                UNTRUSTED_SOURCE, context={"remote_ip": remote or None}
            )
