"""Pytest configuration and fixtures."""

import pytest

from redimo.api.client import Client
from redimo.core.config import Settings
from redimo.engines.geo import GeoEngine
from redimo.engines.sorted_set import SortedSetEngine
from redimo.storage.sqlite import SQLiteStore


@pytest.fixture
def settings():
    """Default layout, independent of REDIMO_* variables in the environment."""
    return Settings(_env_file=None, backend="sqlite", sqlite_path=":memory:")


@pytest.fixture
def store(settings):
    """In-memory store with tiny pages so every scan spans several pages."""
    store = SQLiteStore(
        ":memory:",
        indexed_attributes=settings.indexed_attributes,
        page_size=2,
    )
    yield store
    store.close()


@pytest.fixture
def zsets(store, settings):
    return SortedSetEngine(store, settings)


@pytest.fixture
def geo(store, settings):
    return GeoEngine(store, settings)


@pytest.fixture
def client(store, settings):
    return Client(store=store, settings=settings)


@pytest.fixture
def nine(zsets):
    """A sorted set "z1" holding m1..m9 scored 1..9."""
    zsets.add("z1", {f"m{i}": float(i) for i in range(1, 10)})
    return zsets
