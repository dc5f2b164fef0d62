"""Pytest configuration for the pricetrack test suite."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from pricetrack.core.storage import InMemoryFallbackCache, InMemoryObjectStore

FIXED_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line options for controlling integration tests."""

    parser.addoption(
        "--pricetrack-run-integration",
        action="store_true",
        default=False,
        help="Run pricetrack integration tests that require external services.",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless explicitly requested."""

    if config.getoption("--pricetrack-run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="integration tests require --pricetrack-run-integration")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture()
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture()
def clock():
    return lambda: FIXED_NOW


@pytest.fixture()
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture()
def fallback_cache() -> InMemoryFallbackCache:
    return InMemoryFallbackCache(max_size=100)
