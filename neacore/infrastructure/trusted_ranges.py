"""Trusted proxy ranges with periodic background refresh.

The set of CIDR blocks a request must come from (the CDN edge in front of the
gateway) is held as an immutable ``TrustedRangeSet`` snapshot. The
``TrustedRangeRefresher`` fetches the current lists over HTTP on start and
then every ``refresh_interval_seconds``, and swaps in a new snapshot with a
single attribute assignment. Readers always see either the old or the new
snapshot, never a partial one.

A refresh succeeds only if every source answers and every line parses. Any
failure keeps the previous snapshot. The refresher starts from the shipped
default list, so the set is never empty.

State transitions::

    UNINITIALIZED -> REFRESHING -> ACTIVE -> REFRESHING -> ACTIVE -> ...
"""

import asyncio
import contextlib
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import httpx
from loguru import logger

from neacore.core.config import RateLimitConfig
from neacore.core.constants import DEFAULT_TRUSTED_RANGES
from neacore.core.exceptions import MalformedAddressError
from neacore.security.cidr import CidrRange, parse_cidr


class RefreshState(Enum):
    """Lifecycle state of the trusted range refresher."""

    UNINITIALIZED = "uninitialized"
    REFRESHING = "refreshing"
    ACTIVE = "active"


@dataclass(frozen=True, slots=True)
class TrustedRangeSet:
    """Immutable snapshot of trusted CIDR ranges.

    Attributes:
        ranges: Parsed ranges, in source order.
        source: Where the snapshot came from ("default" or "remote").
    """

    ranges: tuple[CidrRange, ...]
    source: str = "default"

    @classmethod
    def from_strings(cls, cidrs: Iterable[str], source: str = "default") -> "TrustedRangeSet":
        """Parse CIDR strings into a snapshot.

        Raises:
            MalformedAddressError: If any entry is not a valid CIDR.
        """
        return cls(tuple(parse_cidr(cidr) for cidr in cidrs), source)

    def contains(self, ip: str) -> bool:
        """Check whether ``ip`` falls in any range of the snapshot."""
        return any(cidr.contains(ip) for cidr in self.ranges)

    def __len__(self) -> int:
        """Return the number of ranges."""
        return len(self.ranges)


class TrustedRangeSource(Protocol):
    """A source of newline-delimited CIDR text."""

    async def fetch(self) -> str:
        """Return the raw range list."""
        ...


class HttpRangeSource:
    """Fetch a range list from a URL.

    Args:
        url: Address of a newline-delimited CIDR list.
        client: Shared HTTP client; its timeout bounds the fetch.
    """

    def __init__(self, url: str, client: httpx.AsyncClient) -> None:
        self.url = url
        self._client = client

    async def fetch(self) -> str:
        """Download the list.

        Raises:
            httpx.HTTPError: On network errors, timeouts and non-2xx answers.
        """
        response = await self._client.get(self.url)
        response.raise_for_status()
        return response.text

    def __repr__(self) -> str:
        """Return the source URL."""
        return f"HttpRangeSource({self.url!r})"


def parse_range_text(text: str) -> list[str]:
    """Split a range list into stripped, non-empty, non-comment lines."""
    return [
        line.strip()
        for line in text.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]


class TrustedRangeRefresher:
    """Hold the current trusted ranges and refresh them in the background.

    Args:
        sources: Range sources; all must succeed for a refresh to apply.
        interval_seconds: Delay between refreshes.
        fallback: Ranges in effect until the first successful refresh.
    """

    def __init__(
        self,
        sources: Sequence[TrustedRangeSource],
        interval_seconds: float,
        fallback: Iterable[str] = DEFAULT_TRUSTED_RANGES,
    ) -> None:
        self._sources = tuple(sources)
        self._interval = interval_seconds
        self.current = TrustedRangeSet.from_strings(fallback)
        self.state = RefreshState.UNINITIALIZED
        self._task: asyncio.Task[None] | None = None

    async def _fetch_all(self) -> list[str]:
        # The first failing source cancels the fetches still in flight
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(source.fetch()) for source in self._sources]
        except ExceptionGroup as eg:
            raise eg.exceptions[0] from None
        cidrs: list[str] = []
        for task in tasks:
            cidrs.extend(parse_range_text(task.result()))
        return cidrs

    async def refresh(self) -> bool:
        """Fetch all sources once and swap in the result on success.

        Returns:
            bool: True if a new snapshot was installed.
        """
        self.state = RefreshState.REFRESHING
        try:
            cidrs = await self._fetch_all()
            if not cidrs:
                logger.warning("Trusted range refresh returned no ranges, keeping current set")
                return False
            snapshot = TrustedRangeSet.from_strings(cidrs, source="remote")
        except httpx.HTTPError as e:
            logger.warning(
                "Trusted range refresh failed, keeping current set: {}",
                e,
                error_type=type(e).__name__,
            )
            return False
        except MalformedAddressError as e:
            logger.warning(
                "Trusted range list contained an invalid entry, keeping current set: {}",
                e.message,
            )
            return False
        finally:
            self.state = RefreshState.ACTIVE

        self.current = snapshot
        logger.info("Trusted ranges refreshed", range_count=len(snapshot))
        return True

    async def _run(self) -> None:
        while True:
            try:
                await self.refresh()
            except Exception:
                # The loop outlives any single bad refresh
                logger.exception("Unexpected error during trusted range refresh")
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        """Start the background refresh loop (first refresh runs immediately)."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._run(), name="trusted-range-refresh")
        logger.info(
            "Trusted range refresher started",
            interval_seconds=self._interval,
            source_count=len(self._sources),
        )

    async def stop(self) -> None:
        """Cancel the background loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Trusted range refresher stopped")

    @property
    def running(self) -> bool:
        """Whether the background loop is active."""
        return self._task is not None and not self._task.done()


def create_refresher(
    config: RateLimitConfig, client: httpx.AsyncClient
) -> TrustedRangeRefresher:
    """Build a refresher reading every configured source URL with ``client``."""
    return TrustedRangeRefresher(
        [HttpRangeSource(url, client) for url in config.range_source_urls],
        interval_seconds=config.refresh_interval_seconds,
    )
