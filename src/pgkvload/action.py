"""
Worker-pool plumbing shared by the writer and the reader.

A pool is a fixed set of tasks on one ThreadPoolExecutor. The futures are the
join barrier; a stop event is checked between keys; a reporter thread prints
progress until the last worker exits.
"""

from __future__ import annotations

import sys
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor

from .errors import ConfigurationError
from .keys import KeyPartitioner, KeyRange
from .storage import Store

MAX_THREADS = 32767


class MultiThreadedAction:
    action_name = "action"

    def __init__(self, store: Store, progress_interval: float = 5.0):
        self._store = store
        self._progress_interval = progress_interval
        self._range: KeyRange | None = None
        self._partitioner: KeyPartitioner | None = None

        self._stop = threading.Event()
        self._workers_done = threading.Event()
        self._executor: ThreadPoolExecutor | None = None
        self._futures: list[Future] = []
        self._reporter: threading.Thread | None = None

        self._lock = threading.Lock()
        self._active = 0
        self._num_keys = 0
        self._num_cols = 0
        self._start_ts = 0.0

    # -----------------------------
    # Lifecycle
    # -----------------------------
    @property
    def started(self) -> bool:
        return self._range is not None

    @property
    def key_range(self) -> KeyRange | None:
        return self._range

    def finished(self) -> bool:
        """True once every worker has exited (range exhausted or stopped)."""
        return self._workers_done.is_set()

    def stop(self) -> None:
        """Ask workers to stop claiming keys. In-flight storage calls complete."""
        self._stop.set()

    def _begin(self, key_range: KeyRange, num_threads: int) -> None:
        if self.started:
            raise ConfigurationError(f"{self.action_name} was already started")
        if not 1 <= num_threads <= MAX_THREADS:
            raise ConfigurationError(
                f"{self.action_name} threads must be in 1..{MAX_THREADS}, got {num_threads}"
            )
        self._range = key_range
        self._partitioner = KeyPartitioner(key_range)

    def _start_workers(self, num_threads: int) -> None:
        self._start_ts = time.perf_counter()
        self._active = num_threads
        self._executor = ThreadPoolExecutor(
            max_workers=num_threads, thread_name_prefix=self.action_name
        )
        self._futures = [
            self._executor.submit(self._run_worker, wid) for wid in range(num_threads)
        ]
        if self._progress_interval and self._progress_interval > 0:
            self._reporter = threading.Thread(
                target=self._report_progress,
                name=f"{self.action_name}-progress",
                daemon=True,
            )
            self._reporter.start()

    def _run_worker(self, worker_id: int) -> None:
        try:
            self._worker(worker_id)
        except Exception as e:
            print(f"[{self.action_name} {worker_id}] ERROR: {e!r}", file=sys.stderr)
            self._stop.set()
            raise
        finally:
            with self._lock:
                self._active -= 1
                if self._active == 0:
                    self._workers_done.set()

    def _worker(self, worker_id: int) -> None:
        raise NotImplementedError

    def _join_workers(self) -> None:
        """Block until every worker exits; re-raise the first unexpected failure."""
        if self._executor is None:
            raise ConfigurationError(f"{self.action_name} was never started")

        first_exc: BaseException | None = None
        for fut in self._futures:
            exc = fut.exception()
            if exc is not None and first_exc is None:
                first_exc = exc
        self._executor.shutdown(wait=True)
        if self._reporter is not None:
            self._reporter.join()
            self._reporter = None
        if first_exc is not None:
            raise first_exc

    # -----------------------------
    # Counters / progress
    # -----------------------------
    def _count(self, keys: int, cols: int) -> None:
        with self._lock:
            self._num_keys += keys
            self._num_cols += cols

    @property
    def keys_claimed(self) -> int:
        """Keys handed to workers so far, including ones still in flight."""
        return 0 if self._partitioner is None else self._partitioner.claimed

    @property
    def num_keys(self) -> int:
        with self._lock:
            return self._num_keys

    @property
    def num_cols(self) -> int:
        with self._lock:
            return self._num_cols

    def _progress_extra(self) -> str:
        return ""

    def progress_line(self) -> str:
        with self._lock:
            keys, cols, active = self._num_keys, self._num_cols, self._active
        elapsed = max(time.perf_counter() - self._start_ts, 1e-9)
        line = (
            f"[progress] {self.action_name}: keys={keys:,} cols={cols:,} "
            f"threads={active} keys/s={keys / elapsed:,.0f}"
        )
        extra = self._progress_extra()
        return f"{line} {extra}" if extra else line

    def _report_progress(self) -> None:
        while not self._workers_done.wait(self._progress_interval):
            print(self.progress_line())
