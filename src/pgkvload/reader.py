"""
Reader pool.

Each worker claims the next key, waits for the linked writer (if any) to be
key_window keys past it, reads it, and for a sampled share of keys compares
the row with the record regenerated from the key. Read failures and
mismatches both count as errors; more than max_errors stops the pool.
"""

from __future__ import annotations

import enum
import sys
from dataclasses import dataclass

import numpy as np

from .action import MultiThreadedAction
from .errors import ConfigurationError, StoreError
from .generator import GenerationBounds, diff_record, generate
from .keys import KeyRange
from .link import WatermarkSource, WriterLink
from .stats import ErrorStats
from .storage import Store

DEFAULT_MAX_ERRORS = 10
DEFAULT_KEY_WINDOW = 0

# only the first few failures get a full report on stderr
MAX_REPORTED_ERRORS = 20

WAIT_MIN_SEC = 0.001
WAIT_MAX_SEC = 0.1


class ReadStatus(enum.Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ReadResult:
    status: ReadStatus
    keys_read: int
    verified: int
    errors: int
    unreachable: int
    error_keys: tuple[int, ...]

    @property
    def aborted(self) -> bool:
        return self.status is ReadStatus.ABORTED

    @property
    def ok(self) -> bool:
        return (
            self.status is ReadStatus.COMPLETED
            and self.errors == 0
            and self.unreachable == 0
        )


class MultiThreadedReader(MultiThreadedAction):
    action_name = "reader"

    def __init__(
        self,
        store: Store,
        bounds: GenerationBounds,
        progress_interval: float = 5.0,
        seed: int = 12345,
    ):
        super().__init__(store, progress_interval=progress_interval)
        self._bounds = bounds
        self._seed = seed
        self._verify_percent = 0
        self._max_errors = DEFAULT_MAX_ERRORS
        self._key_window = DEFAULT_KEY_WINDOW
        self._link: WriterLink | None = None
        self._stats = ErrorStats()
        self._aborted = False

    def configure(
        self,
        verify_percent: int,
        max_errors: int = DEFAULT_MAX_ERRORS,
        key_window: int = DEFAULT_KEY_WINDOW,
    ) -> None:
        if self.started:
            raise ConfigurationError("reader must be configured before start()")
        if not 0 <= verify_percent <= 100:
            raise ConfigurationError(f"verify percent must be in 0..100, got {verify_percent}")
        if max_errors < 0:
            raise ConfigurationError(f"max errors must be >= 0, got {max_errors}")
        if key_window < 0:
            raise ConfigurationError(f"key window must be >= 0, got {key_window}")
        self._verify_percent = verify_percent
        self._max_errors = max_errors
        self._key_window = key_window

    def link_to_writer(self, writer: WatermarkSource | WriterLink) -> None:
        if self.started:
            raise ConfigurationError("reader must be linked before start()")
        self._link = writer if isinstance(writer, WriterLink) else WriterLink(writer)

    @property
    def linked(self) -> bool:
        return self._link is not None

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def stats(self) -> ErrorStats:
        return self._stats

    def start(self, key_range: KeyRange, num_threads: int) -> None:
        self._begin(key_range, num_threads)
        self._start_workers(num_threads)

    def wait_for_finish(self) -> ReadResult:
        self._join_workers()
        snap = self._stats.snapshot()
        if self._aborted:
            status = ReadStatus.ABORTED
        elif self._stop.is_set():
            status = ReadStatus.STOPPED
        else:
            status = ReadStatus.COMPLETED
        return ReadResult(
            status=status,
            keys_read=snap.keys_read,
            verified=snap.verified,
            errors=snap.errors,
            unreachable=snap.unreachable,
            error_keys=snap.error_keys,
        )

    def _progress_extra(self) -> str:
        snap = self._stats.snapshot()
        line = f"verified={snap.verified:,} errors={snap.errors}"
        if self._link is not None:
            line += f" writer_watermark={self._link.watermark()}"
        return line

    # -----------------------------
    # Worker
    # -----------------------------
    def _worker(self, worker_id: int) -> None:
        rng = np.random.default_rng(self._seed + worker_id)
        while not self._stop.is_set():
            key = self._partitioner.next_key()
            if key is None:
                return
            if self._link is not None and not self._wait_for_writer(key):
                continue

            verify = int(rng.integers(0, 100)) < self._verify_percent
            self._read_key(worker_id, key, verify)

    def _wait_for_writer(self, key: int) -> bool:
        """
        Block until key is readable under the key window.

        Returns False if the reader was stopped meanwhile, or if the writer
        finished without ever writing key (counted as unreachable).
        """
        last = self._range.last
        delay = WAIT_MIN_SEC
        while True:
            if key <= self._link.readable_up_to(last, self._key_window):
                return True
            # finished() first: once it is true the watermark is final
            if self._link.finished():
                if key <= self._link.watermark():
                    return True
                self._stats.record_unreachable()
                return False
            if self._stop.wait(delay):
                return False
            delay = min(delay * 2, WAIT_MAX_SEC)

    def _read_key(self, worker_id: int, key: int, verify: bool) -> None:
        try:
            row = self._store.read(key)
        except StoreError as e:
            self._record_error(worker_id, key, [f"key {key}: read failed: {e}"])
            return

        self._stats.record_read()
        self._count(1, len(row) if row else 0)
        if row is None:
            self._record_error(worker_id, key, [f"key {key}: no data returned"])
            return
        if not verify:
            return

        problems = diff_record(generate(key, self._bounds), row)
        if problems:
            self._record_error(worker_id, key, problems)
        else:
            self._stats.record_verified()

    def _record_error(self, worker_id: int, key: int, problems: list[str]) -> None:
        errors = self._stats.record_error(key)
        if errors <= MAX_REPORTED_ERRORS:
            for line in problems:
                print(f"[reader {worker_id}] ERROR: {line}", file=sys.stderr)
        if errors <= self._max_errors:
            return
        with self._lock:
            if self._aborted:
                return
            self._aborted = True
        self._stop.set()
        print(
            f"[reader] aborting: {errors} errors exceed the limit of {self._max_errors}",
            file=sys.stderr,
        )
