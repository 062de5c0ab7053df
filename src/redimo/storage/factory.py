"""Backend selection from :class:`Settings`."""

from __future__ import annotations

from redimo.core.config import Settings
from redimo.core.exceptions import ConfigError
from redimo.storage.base import StoreProtocol


def build_store(settings: Settings) -> StoreProtocol:
    """Create the store backend named by ``settings.backend``."""
    if settings.backend == "dynamodb":
        from redimo.storage.dynamodb import DynamoDBStore

        return DynamoDBStore.from_settings(settings)
    if settings.backend == "sqlite":
        from redimo.storage.sqlite import SQLiteStore

        return SQLiteStore.from_settings(settings)
    raise ConfigError(f"unknown backend {settings.backend!r}")
