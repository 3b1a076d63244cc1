"""Integration tests for the health probes."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pytest_mock import MockerFixture

from neacore.core.exceptions import CounterStoreError


@pytest.mark.integration
class TestHealthProbes:
    """Probes read the services started by the lifespan."""

    async def test_live(self, client: AsyncClient) -> None:
        """Liveness always answers."""
        response = await client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "alive"

    async def test_ready(self, client: AsyncClient) -> None:
        """Ready when the counter store answers."""
        response = await client.get("/health/ready")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "ready"
        assert data["checks"]["counterStore"] is True

    async def test_not_ready_when_store_fails(
        self, app: FastAPI, client: AsyncClient, mocker: MockerFixture
    ) -> None:
        """A failing counter store makes the gateway unavailable."""
        mocker.patch.object(
            app.state.counter_store, "ping", side_effect=CounterStoreError("Counter Store Timeout")
        )

        response = await client.get("/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["type"].endswith("/service_unavailable")
        assert body["errors"]["counterStore"] is False
        assert body["errors"]["counterStoreError"] == "Counter Store Timeout"

    async def test_startup_complete(self, client: AsyncClient) -> None:
        """Startup reports every service once the lifespan ran."""
        response = await client.get("/health/startup")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "initialized"
        assert data["services"] == {
            "counterStore": True,
            "trustedRanges": True,
            "rateLimiter": True,
        }

    async def test_startup_before_lifespan(self, app: FastAPI) -> None:
        """Without the lifespan the gateway is still initializing."""
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as bare:
            response = await bare.get("/health/startup")

        assert response.status_code == 503
        assert response.json()["errors"]["status"] == "initializing"

    async def test_rate_limited_route_before_lifespan(self, app: FastAPI) -> None:
        """Guarded routes are unavailable until the limiter exists."""
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as bare:
            response = await bare.get("/api/general/1")

        assert response.status_code == 503
        assert response.json()["message"] == "Rate Limiter Not Ready"

    async def test_status(self, client: AsyncClient) -> None:
        """Status describes the application and its services."""
        response = await client.get("/health/status")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["application"]["name"] == "NeaCore API"
        assert data["system"]["pid"] > 0
        assert data["services"]["counterStore"] is True
        assert data["services"]["trustedRanges"]["source"] == "default"
        assert data["services"]["trustedRanges"]["ranges"] > 0
        assert data["services"]["trustedRanges"]["refreshing"] is False
