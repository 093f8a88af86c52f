"""
Writer pool.

Each worker claims the next key, generates its record and writes it, either
as one call for the whole row (multi-put) or one call per column. Successful
keys move the watermark; failed keys are reported and skipped.
"""

from __future__ import annotations

import sys
import threading
from dataclasses import dataclass

from .action import MultiThreadedAction
from .errors import ConfigurationError, StoreError
from .generator import GeneratedRecord, GenerationBounds, generate
from .keys import KeyRange
from .link import WriterLink
from .storage import Store
from .watermark import WriteProgress


@dataclass(frozen=True)
class WriteResult:
    keys_written: int
    columns_written: int
    failed_keys: tuple[int, ...]
    watermark: int
    stopped: bool = False

    @property
    def ok(self) -> bool:
        return not self.failed_keys and not self.stopped


class MultiThreadedWriter(MultiThreadedAction):
    action_name = "writer"

    def __init__(self, store: Store, progress_interval: float = 5.0):
        super().__init__(store, progress_interval=progress_interval)
        self._multi_put = False
        self._bounds: GenerationBounds | None = None
        self._progress: WriteProgress | None = None
        self._failed_lock = threading.Lock()
        self._failed_keys: list[int] = []

    def configure(
        self,
        multi_put: bool,
        cols_range: tuple[int, int],
        size_range: tuple[int, int],
    ) -> None:
        if self.started:
            raise ConfigurationError("writer must be configured before start()")
        min_cols, max_cols = cols_range
        min_size, max_size = size_range
        self._bounds = GenerationBounds(min_cols, max_cols, min_size, max_size)
        self._multi_put = multi_put

    @property
    def bounds(self) -> GenerationBounds | None:
        return self._bounds

    @property
    def multi_put(self) -> bool:
        return self._multi_put

    def start(self, key_range: KeyRange, num_threads: int) -> None:
        if self._bounds is None:
            raise ConfigurationError("writer.configure() must be called before start()")
        self._begin(key_range, num_threads)
        self._progress = WriteProgress(key_range.start)
        self._start_workers(num_threads)

    def watermark(self) -> int:
        if self._progress is None:
            return -1 if self._range is None else self._range.start - 1
        return self._progress.watermark()

    def link(self) -> WriterLink:
        return WriterLink(self)

    @property
    def failed_keys(self) -> tuple[int, ...]:
        with self._failed_lock:
            return tuple(sorted(self._failed_keys))

    def wait_for_finish(self) -> WriteResult:
        self._join_workers()
        return WriteResult(
            keys_written=self.num_keys,
            columns_written=self.num_cols,
            failed_keys=self.failed_keys,
            watermark=self.watermark(),
            stopped=self._stop.is_set(),
        )

    def _progress_extra(self) -> str:
        parts = [f"watermark={self.watermark()}"]
        failed = len(self.failed_keys)
        if failed:
            parts.append(f"failed={failed}")
        return " ".join(parts)

    # -----------------------------
    # Worker
    # -----------------------------
    def _worker(self, worker_id: int) -> None:
        bounds = self._bounds
        while not self._stop.is_set():
            key = self._partitioner.next_key()
            if key is None:
                return

            record = generate(key, bounds)
            try:
                self._write(record)
            except StoreError as e:
                with self._failed_lock:
                    self._failed_keys.append(key)
                print(
                    f"[writer {worker_id}] ERROR: failed to write key {key}: {e}",
                    file=sys.stderr,
                )
                continue

            self._progress.record_completion(key)
            self._count(1, record.num_cols)

    def _write(self, record: GeneratedRecord) -> None:
        if self._multi_put:
            self._store.write(record.key, record.columns)
            return
        for col, value in record.columns.items():
            self._store.write(record.key, {col: value})
