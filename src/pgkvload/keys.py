"""Key ranges and the shared claim cursor used by every worker pool."""

from __future__ import annotations

import threading
from dataclasses import dataclass

from .errors import ConfigurationError

MAX_KEY = 2**63 - 1


@dataclass(frozen=True)
class KeyRange:
    """Half-open [start, end)."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ConfigurationError(f"start key must be >= 0, got {self.start}")
        if self.end < self.start:
            raise ConfigurationError(f"key range end {self.end} < start {self.start}")
        if self.end > MAX_KEY:
            raise ConfigurationError(f"key range end {self.end} exceeds {MAX_KEY}")

    @classmethod
    def from_count(cls, start: int, num_keys: int) -> "KeyRange":
        return cls(start, start + num_keys)

    @property
    def last(self) -> int:
        return self.end - 1

    def __len__(self) -> int:
        return self.end - self.start

    def __contains__(self, key: object) -> bool:
        return isinstance(key, int) and self.start <= key < self.end

    def __str__(self) -> str:
        return f"{self.start}..{self.end - 1}"


class KeyPartitioner:
    """
    Hands out keys of a range one at a time to any number of threads.

    There is no static split: whichever worker asks next gets the next key,
    so fast workers end up doing more of the range.
    """

    def __init__(self, key_range: KeyRange):
        self._range = key_range
        self._next = key_range.start
        self._lock = threading.Lock()

    @property
    def key_range(self) -> KeyRange:
        return self._range

    @property
    def claimed(self) -> int:
        with self._lock:
            return self._next - self._range.start

    def next_key(self) -> int | None:
        with self._lock:
            if self._next >= self._range.end:
                return None
            key = self._next
            self._next += 1
            return key
