"""Public type re-exports for the redimo API layer.

Consumers of the API can import commonly used types from this module
instead of reaching into ``redimo.core`` directly.
"""

from __future__ import annotations

from redimo.core.exceptions import (
    ConditionFailedError,
    ContentionError,
    InvalidScoreError,
    RedimoError,
    StoreError,
    UnsupportedOperationError,
)
from redimo.core.models import AddFlag, Location, Unit

__all__ = [
    "AddFlag",
    "ConditionFailedError",
    "ContentionError",
    "InvalidScoreError",
    "Location",
    "RedimoError",
    "StoreError",
    "Unit",
    "UnsupportedOperationError",
]
