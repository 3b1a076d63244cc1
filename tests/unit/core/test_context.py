"""Unit tests for neacore.core.context module."""

import asyncio
import uuid

import pytest

from neacore.core.context import (
    RequestContext,
    generate_correlation_id,
    generate_request_id,
)


@pytest.mark.unit
class TestRequestContext:
    """Context variable storage."""

    def test_set_and_get(self) -> None:
        """Stored values are read back."""
        RequestContext.set_correlation_id("corr-1")
        RequestContext.set_fingerprint("abc")

        assert RequestContext.get_correlation_id() == "corr-1"
        assert RequestContext.get_fingerprint() == "abc"

    def test_clear(self) -> None:
        """clear() resets both values."""
        RequestContext.set_correlation_id("corr-1")
        RequestContext.set_fingerprint("abc")

        RequestContext.clear()

        assert RequestContext.get_correlation_id() is None
        assert RequestContext.get_fingerprint() is None

    async def test_tasks_are_isolated(self) -> None:
        """Each task sees its own correlation ID."""

        async def handle(value: str) -> str | None:
            RequestContext.set_correlation_id(value)
            await asyncio.sleep(0)
            return RequestContext.get_correlation_id()

        results = await asyncio.gather(handle("a"), handle("b"))

        assert results == ["a", "b"]


@pytest.mark.unit
class TestIdentifiers:
    """Generated identifiers."""

    def test_correlation_id_is_uuid(self) -> None:
        """Correlation IDs are UUID4 strings."""
        assert uuid.UUID(generate_correlation_id()).version == 4

    def test_request_id_prefix(self) -> None:
        """Request IDs carry the req- prefix and are unique."""
        first, second = generate_request_id(), generate_request_id()

        assert first.startswith("req-")
        assert first != second
