from __future__ import annotations

import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class StatsSnapshot:
    keys_read: int
    verified: int
    errors: int
    unreachable: int
    error_keys: tuple[int, ...]


class ErrorStats:
    """Reader pool counters. Only ever go up."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._keys_read = 0
        self._verified = 0
        self._errors = 0
        self._unreachable = 0
        self._error_keys: set[int] = set()

    def record_read(self) -> None:
        with self._lock:
            self._keys_read += 1

    def record_verified(self) -> None:
        with self._lock:
            self._verified += 1

    def record_unreachable(self) -> None:
        with self._lock:
            self._unreachable += 1

    def record_error(self, key: int) -> int:
        """Count one failed key. Returns the error count after the increment."""
        with self._lock:
            self._errors += 1
            self._error_keys.add(key)
            return self._errors

    @property
    def verified(self) -> int:
        with self._lock:
            return self._verified

    @property
    def errors(self) -> int:
        with self._lock:
            return self._errors

    @property
    def keys_read(self) -> int:
        with self._lock:
            return self._keys_read

    def snapshot(self) -> StatsSnapshot:
        with self._lock:
            return StatsSnapshot(
                keys_read=self._keys_read,
                verified=self._verified,
                errors=self._errors,
                unreachable=self._unreachable,
                error_keys=tuple(sorted(self._error_keys)),
            )
