"""Key-value store for fixed-window rate counters.

The rate limiter only needs four primitives with per-key expiry:
``get``, ``set`` with a TTL, atomic ``incr`` and ``ping`` for health checks.
``RedisCounterStore`` provides them on top of ``redis.asyncio``;
``InMemoryCounterStore`` keeps counters in the process for development and
tests.

Every Redis failure, timeouts included, is re-raised as
``CounterStoreError`` so callers handle one exception type.
"""

import time
from typing import Protocol, runtime_checkable

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

from neacore.core.config import RedisConfig
from neacore.core.exceptions import CounterStoreError


@runtime_checkable
class CounterStore(Protocol):
    """Storage interface used by the rate limiter."""

    async def get(self, key: str) -> str | None:
        """Return the counter value, or None if absent or expired."""
        ...

    async def set(self, key: str, value: int, ttl_seconds: int) -> None:
        """Set the counter with an expiry."""
        ...

    async def incr(self, key: str) -> int:
        """Atomically increment the counter and return the new value."""
        ...

    async def ping(self) -> bool:
        """Check that the store is reachable."""
        ...

    async def close(self) -> None:
        """Release connections held by the store."""
        ...


class RedisCounterStore:
    """Counter store backed by Redis.

    Args:
        client: An async Redis client created with ``decode_responses=True``.
    """

    def __init__(self, client: Redis) -> None:
        self._redis = client

    @classmethod
    def from_config(cls, config: RedisConfig) -> "RedisCounterStore":
        """Create a store from configuration.

        Args:
            config: Redis connection settings.

        Returns:
            RedisCounterStore: A store with a lazily connecting client.
        """
        client = Redis.from_url(
            config.redis_url,
            password=config.password,
            socket_timeout=config.socket_timeout,
            socket_connect_timeout=config.socket_timeout,
            decode_responses=True,
        )
        return cls(client)

    async def get(self, key: str) -> str | None:
        """Return the counter value, or None if absent or expired."""
        try:
            value = await self._redis.get(key)
        except RedisError as e:
            raise CounterStoreError(
                f"Failed to read counter '{key}'", context={"key": key}, cause=e
            ) from e
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else str(value)

    async def set(self, key: str, value: int, ttl_seconds: int) -> None:
        """Set the counter with an expiry (``SET key value EX ttl``)."""
        try:
            await self._redis.set(key, value, ex=ttl_seconds)
        except RedisError as e:
            raise CounterStoreError(
                f"Failed to set counter '{key}'",
                context={"key": key, "ttl_seconds": ttl_seconds},
                cause=e,
            ) from e

    async def incr(self, key: str) -> int:
        """Atomically increment the counter (``INCR key``)."""
        try:
            return int(await self._redis.incr(key))
        except RedisError as e:
            raise CounterStoreError(
                f"Failed to increment counter '{key}'", context={"key": key}, cause=e
            ) from e

    async def ping(self) -> bool:
        """Check that Redis answers ``PING``."""
        try:
            return bool(await self._redis.ping())
        except RedisError as e:
            raise CounterStoreError("Counter store ping failed", cause=e) from e

    async def close(self) -> None:
        """Close the Redis connection pool."""
        try:
            await self._redis.aclose()
        except RedisError as e:
            logger.warning("Error closing counter store connection: {}", e)


class InMemoryCounterStore:
    """Process-local counter store.

    Expiry uses a monotonic clock. Counters are not shared between worker
    processes, so limits apply per process.
    """

    def __init__(self) -> None:
        self._values: dict[str, tuple[int, float | None]] = {}

    def _live_value(self, key: str) -> int | None:
        entry = self._values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and time.monotonic() >= expires_at:
            del self._values[key]
            return None
        return value

    async def get(self, key: str) -> str | None:
        """Return the counter value, or None if absent or expired."""
        value = self._live_value(key)
        return None if value is None else str(value)

    def __len__(self) -> int:
        """Number of stored counters, expired ones not yet swept included."""
        return len(self._values)

    def _sweep_expired(self, now: float) -> None:
        expired = [
            key
            for key, (_, expires_at) in self._values.items()
            if expires_at is not None and now >= expires_at
        ]
        for key in expired:
            del self._values[key]

    async def set(self, key: str, value: int, ttl_seconds: int) -> None:
        """Set the counter with an expiry, dropping every expired counter."""
        now = time.monotonic()
        self._sweep_expired(now)
        self._values[key] = (int(value), now + ttl_seconds)

    async def incr(self, key: str) -> int:
        """Increment the counter; a missing key starts at 0 with no expiry."""
        current = self._live_value(key)
        expires_at = self._values[key][1] if current is not None else None
        new_value = (current or 0) + 1
        self._values[key] = (new_value, expires_at)
        return new_value

    async def ping(self) -> bool:
        """Always reachable."""
        return True

    async def close(self) -> None:
        """Drop all counters."""
        self._values.clear()


def create_counter_store(config: RedisConfig) -> CounterStore:
    """Create the counter store selected by configuration.

    Args:
        config: Redis connection settings.

    Returns:
        CounterStore: In-memory store if ``use_memory_store`` is set, Redis
            otherwise.
    """
    if config.use_memory_store:
        logger.info("Using in-memory counter store")
        return InMemoryCounterStore()

    logger.info("Using Redis counter store")
    return RedisCounterStore.from_config(config)
