"""Fixtures for tests that run the whole application in-process."""

import hashlib
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from neacore.api.main import create_app
from neacore.core.config import get_settings

CLIENT_ID = "web"
CLIENT_SECRET = "integration-secret"
ALLOWED_ORIGIN = "https://app.example.com"

BASE_ENV = {
    "REDIS_CONFIG__USE_MEMORY_STORE": "true",
    "RATE_LIMIT_CONFIG__REFRESH_ENABLED": "false",
    "CORS_CONFIG__ORIGINS": ALLOWED_ORIGIN,
    "SIGNATURE_CONFIG__CLIENT_SECRETS": f'{{"{CLIENT_ID}": "{CLIENT_SECRET}"}}',
    "ERROR_BASE_URL": "https://api.test/errors/",
    "LOG_CONFIG__LOG_LEVEL": "WARNING",
}


@pytest.fixture
def env_overrides() -> dict[str, str]:
    """Extra environment for one test; override with parametrize."""
    return {}


@pytest.fixture
def app(monkeypatch: pytest.MonkeyPatch, env_overrides: dict[str, str]) -> FastAPI:
    """Application configured from the test environment, not yet started."""
    for key, value in {**BASE_ENV, **env_overrides}.items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()
    return create_app()


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Client bound to the started application."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as test_client,
    ):
        yield test_client


@pytest.fixture
def sign() -> Callable[[dict[str, Any]], str]:
    """Compute the signature of a parameter set with the client secret."""

    def _sign(params: dict[str, Any]) -> str:
        data = "&".join(f"{key}={params[key]}" for key in sorted(params))
        return hashlib.sha256(f"{data}{CLIENT_SECRET}".encode()).hexdigest()

    return _sign


@pytest.fixture
def client_secret() -> str:
    """Secret of the configured client."""
    return CLIENT_SECRET
