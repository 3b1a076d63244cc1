"""Root conftest.py for the NeaCore test suite.

This file contains project-wide fixtures and pytest configuration.
"""

from collections.abc import Generator

import pytest

from neacore.core.config import get_settings
from neacore.core.context import RequestContext


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components in isolation"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test multiple components"
    )


@pytest.fixture(autouse=True)
def clean_lru_cache() -> Generator[None]:
    """Clear the settings cache before and after each test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def clean_request_context() -> Generator[None]:
    """Reset request context variables around each test."""
    RequestContext.clear()
    yield
    RequestContext.clear()
