"""Stores with injected behaviour for engine tests."""

from __future__ import annotations

import threading

from pgkvload.errors import StoreError
from pgkvload.storage import MemoryStore


class FailingStore(MemoryStore):
    """MemoryStore that raises StoreError for chosen keys."""

    def __init__(self, fail_writes=(), fail_reads=()):
        super().__init__()
        self.fail_writes = set(fail_writes)
        self.fail_reads = set(fail_reads)

    def write(self, key, columns):
        if key in self.fail_writes:
            raise StoreError("injected write failure", key=key)
        super().write(key, columns)

    def read(self, key):
        if key in self.fail_reads:
            raise StoreError("injected read failure", key=key)
        return super().read(key)


class CountingStore(MemoryStore):
    def __init__(self):
        super().__init__()
        self.write_calls = 0
        self._calls_lock = threading.Lock()

    def write(self, key, columns):
        with self._calls_lock:
            self.write_calls += 1
        super().write(key, columns)


class BrokenStore(MemoryStore):
    """Raises something that is not a StoreError: a bug, not a storage failure."""

    def write(self, key, columns):
        raise RuntimeError("boom")


class FakeWriter:
    """Watermark source driven by hand."""

    def __init__(self, mark=-1):
        self.mark = mark
        self.done = False

    def watermark(self):
        return self.mark

    def finished(self):
        return self.done
