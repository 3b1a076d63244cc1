"""Unit tests for neacore.infrastructure.counter_store module."""

from collections.abc import AsyncGenerator

import fakeredis.aioredis
import pytest
from pytest_mock import MockerFixture
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from neacore.core.config import RedisConfig
from neacore.core.exceptions import CounterStoreError, ErrorKind
from neacore.infrastructure.counter_store import (
    CounterStore,
    InMemoryCounterStore,
    RedisCounterStore,
    create_counter_store,
)


@pytest.fixture
async def redis_client() -> AsyncGenerator[fakeredis.aioredis.FakeRedis]:
    """Provide an in-memory Redis emulation."""
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def redis_store(redis_client: fakeredis.aioredis.FakeRedis) -> RedisCounterStore:
    """Provide a Redis counter store on fakeredis."""
    return RedisCounterStore(redis_client)


@pytest.mark.unit
class TestRedisCounterStore:
    """Redis-backed counters."""

    async def test_missing_key(self, redis_store: RedisCounterStore) -> None:
        """Absent counters read as None."""
        assert await redis_store.get("rate:nobody") is None

    async def test_set_with_ttl(
        self, redis_store: RedisCounterStore, redis_client: fakeredis.aioredis.FakeRedis
    ) -> None:
        """Counters are stored with the window as expiry."""
        await redis_store.set("rate:1.2.3.4", 1, 60)

        assert await redis_store.get("rate:1.2.3.4") == "1"
        assert 0 < await redis_client.ttl("rate:1.2.3.4") <= 60

    async def test_incr_keeps_ttl(
        self, redis_store: RedisCounterStore, redis_client: fakeredis.aioredis.FakeRedis
    ) -> None:
        """Incrementing returns the new value and leaves the expiry in place."""
        await redis_store.set("rate:1.2.3.4", 1, 60)

        assert await redis_store.incr("rate:1.2.3.4") == 2
        assert await redis_store.incr("rate:1.2.3.4") == 3
        assert await redis_client.ttl("rate:1.2.3.4") > 0

    async def test_ping(self, redis_store: RedisCounterStore) -> None:
        """A reachable server answers PING."""
        assert await redis_store.ping() is True

    @pytest.mark.parametrize(
        ("method", "args"),
        [("get", ("k",)), ("set", ("k", 1, 60)), ("incr", ("k",)), ("ping", ())],
    )
    async def test_redis_errors_are_wrapped(
        self, mocker: MockerFixture, method: str, args: tuple[object, ...]
    ) -> None:
        """Connection failures and timeouts surface as CounterStoreError."""
        client = mocker.AsyncMock()
        getattr(client, method).side_effect = RedisTimeoutError("timed out")
        store = RedisCounterStore(client)

        with pytest.raises(CounterStoreError) as exc_info:
            await getattr(store, method)(*args)

        assert exc_info.value.kind is ErrorKind.SERVICE_UNAVAILABLE
        assert isinstance(exc_info.value.__cause__, RedisTimeoutError)

    async def test_close_errors_are_logged(self, mocker: MockerFixture) -> None:
        """Errors while closing are logged, not raised."""
        client = mocker.AsyncMock()
        client.aclose.side_effect = RedisConnectionError("gone")
        warning = mocker.patch("neacore.infrastructure.counter_store.logger.warning")

        await RedisCounterStore(client).close()

        warning.assert_called_once()

    async def test_from_config(self) -> None:
        """The client is built from the configured URL without connecting."""
        store = RedisCounterStore.from_config(
            RedisConfig(redis_url="redis://cache:6380/2", socket_timeout=1.5)
        )

        kwargs = store._redis.connection_pool.connection_kwargs
        assert kwargs["host"] == "cache"
        assert kwargs["port"] == 6380
        assert kwargs["db"] == 2
        assert kwargs["socket_timeout"] == 1.5
        await store.close()


@pytest.mark.unit
class TestInMemoryCounterStore:
    """Process-local counters."""

    async def test_round_trip(self) -> None:
        """Set, read and increment a counter."""
        store = InMemoryCounterStore()

        await store.set("rate:a", 1, 60)
        assert await store.get("rate:a") == "1"
        assert await store.incr("rate:a") == 2
        assert await store.get("rate:a") == "2"

    async def test_expired_counter_is_gone(self) -> None:
        """A counter whose TTL elapsed reads as None."""
        store = InMemoryCounterStore()

        await store.set("rate:a", 5, 0)

        assert await store.get("rate:a") is None

    async def test_set_drops_expired_counters(self, mocker: MockerFixture) -> None:
        """Counters that are never read again do not accumulate."""
        clock = mocker.patch(
            "neacore.infrastructure.counter_store.time.monotonic", return_value=100.0
        )
        store = InMemoryCounterStore()
        await store.set("rate:a", 1, 10)
        await store.set("rate:b", 1, 60)

        clock.return_value = 120.0
        await store.set("rate:c", 1, 60)

        assert len(store) == 2
        assert await store.get("rate:a") is None
        assert await store.get("rate:b") == "1"

    async def test_incr_missing_key_starts_at_one(self) -> None:
        """Incrementing an absent key creates it."""
        store = InMemoryCounterStore()

        assert await store.incr("rate:new") == 1

    async def test_ping_and_close(self) -> None:
        """Always reachable; close drops every counter."""
        store = InMemoryCounterStore()
        await store.set("rate:a", 1, 60)

        assert await store.ping() is True
        await store.close()
        assert await store.get("rate:a") is None

    def test_satisfies_protocol(self) -> None:
        """Both stores implement the CounterStore protocol."""
        assert isinstance(InMemoryCounterStore(), CounterStore)


@pytest.mark.unit
class TestCreateCounterStore:
    """Store selection from configuration."""

    async def test_memory_store(self) -> None:
        """use_memory_store selects the in-process store."""
        store = create_counter_store(RedisConfig(use_memory_store=True))

        assert isinstance(store, InMemoryCounterStore)

    async def test_redis_store(self) -> None:
        """Redis is the default."""
        store = create_counter_store(RedisConfig())

        assert isinstance(store, RedisCounterStore)
        assert isinstance(store, CounterStore)
        await store.close()
