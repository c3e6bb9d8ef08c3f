"""Pytest configuration and fixtures."""
from datetime import datetime, timedelta, timezone

import pytest

from shootplan.ai_cache import CacheStore, InMemoryCacheBackend
from shootplan.scheduling.stores import InMemoryProductionStore


def pytest_configure(config):
    """Run async tests without per-test markers when no ini file sets the mode."""
    if hasattr(config.option, "asyncio_mode") and config.option.asyncio_mode is None:
        config.option.asyncio_mode = "auto"


class FakeClock:
    """Settable clock for TTL tests."""

    def __init__(self, start=None):
        self.current = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_store(clock):
    return CacheStore(InMemoryCacheBackend(), now=clock)


@pytest.fixture
def production_store():
    return InMemoryProductionStore()
