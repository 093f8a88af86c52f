"""
Write progress as a contiguous prefix.

Writers claim keys in increasing order but finish them in any order. The
watermark is the last key W such that every key in [start, W] is written.
Completions above the boundary wait in a set until the gap below them fills.
"""

from __future__ import annotations

import threading


class WriteProgress:
    def __init__(self, start: int):
        self._next_expected = start
        self._pending: set[int] = set()
        self._completed = 0
        self._lock = threading.Lock()

    def record_completion(self, key: int) -> int:
        """Mark key as written. Returns the watermark after the update."""
        with self._lock:
            if key < self._next_expected or key in self._pending:
                raise ValueError(f"key {key} already recorded as written")
            self._completed += 1
            if key != self._next_expected:
                self._pending.add(key)
                return self._next_expected - 1

            nxt = key + 1
            pending = self._pending
            while nxt in pending:
                pending.discard(nxt)
                nxt += 1
            self._next_expected = nxt
            return nxt - 1

    def watermark(self) -> int:
        with self._lock:
            return self._next_expected - 1

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    @property
    def pending(self) -> int:
        """Keys written but not yet covered by the watermark."""
        with self._lock:
            return len(self._pending)
