"""Custom exception hierarchy for redimo."""

from __future__ import annotations

from typing import Any


class RedimoError(Exception):
    """Base exception for all redimo errors."""


class StoreError(RedimoError):
    """Raised when a store request fails.

    ``partial`` holds whatever a multi-page scan or multi-member batch had
    already accumulated when the failure happened, or ``None``.
    """

    def __init__(self, message: str, *, partial: Any = None) -> None:
        super().__init__(message)
        self.partial = partial


class ConditionFailedError(StoreError):
    """Raised when a conditional write misses its precondition."""


class ContentionError(RedimoError):
    """Raised when an optimistic increment runs out of attempts."""

    def __init__(self, key: str, member: str, attempts: int) -> None:
        super().__init__(
            f"too much contention on {key} / {member} after {attempts} attempts"
        )
        self.key = key
        self.member = member
        self.attempts = attempts


class InvalidScoreError(RedimoError, ValueError):
    """Raised for NaN scores and malformed score encodings."""


class UnsupportedOperationError(RedimoError, NotImplementedError):
    """Raised for commands that cannot be emulated on the store."""


class ConfigError(RedimoError):
    """Raised when configuration is invalid."""
