from __future__ import annotations


class LoadTestError(Exception):
    """Base class for everything pgkvload raises on purpose."""


class ConfigurationError(LoadTestError, ValueError):
    """Bad bounds, thread counts or engine lifecycle misuse. Raised before workers start."""


class StoreError(LoadTestError):
    """A single storage call failed. Workers recover from it per key."""

    def __init__(self, message: str, key: int | None = None):
        super().__init__(message)
        self.key = key
