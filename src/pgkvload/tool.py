"""
Load test driver: option values, and the write/read run itself.

Write and read passes can run alone or together. When both run, readers are
linked to the writer and never read past its watermark minus the key window.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ConfigurationError
from .generator import GenerationBounds
from .keys import KeyRange
from .reader import (
    DEFAULT_KEY_WINDOW,
    DEFAULT_MAX_ERRORS,
    MultiThreadedReader,
    ReadResult,
)
from .storage import Store
from .writer import MultiThreadedWriter, WriteResult

DEFAULT_NUM_THREADS = 20

USAGE_WRITE = f"<avg_cols_per_key>:<avg_data_size>[:<#threads={DEFAULT_NUM_THREADS}>]"
USAGE_READ = f"<verify_percent>[:<#threads={DEFAULT_NUM_THREADS}>]"
USAGE_DATA = "<avg_cols_per_key>:<avg_data_size>"


@dataclass(frozen=True)
class WriteSpec:
    bounds: GenerationBounds
    threads: int = DEFAULT_NUM_THREADS
    multi_put: bool = False


@dataclass(frozen=True)
class ReadSpec:
    verify_percent: int
    threads: int = DEFAULT_NUM_THREADS
    max_errors: int = DEFAULT_MAX_ERRORS
    key_window: int = DEFAULT_KEY_WINDOW


@dataclass(frozen=True)
class LoadTestOptions:
    key_range: KeyRange
    bounds: GenerationBounds
    write: WriteSpec | None = None
    read: ReadSpec | None = None
    progress_interval: float = 5.0
    seed: int = 12345

    def __post_init__(self) -> None:
        if self.write is None and self.read is None:
            raise ConfigurationError("either --write or --read has to be specified")


@dataclass(frozen=True)
class RunReport:
    write: WriteResult | None
    read: ReadResult | None

    @property
    def ok(self) -> bool:
        if self.write is not None and not self.write.ok:
            return False
        if self.read is not None and not self.read.ok:
            return False
        return True

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


# -----------------------------
# Option parsing helpers
# -----------------------------
def split_colon_separated(option: str, value: str, min_parts: int, max_parts: int) -> list[str]:
    parts = value.split(":")
    if not min_parts <= len(parts) <= max_parts:
        raise ConfigurationError(
            f"expected at least {min_parts} fields but no more than {max_parts} "
            f"in the colon-separated value {value!r} of the --{option} option"
        )
    return parts


def parse_int(text: str, lo: int, hi: int, what: str) -> int:
    try:
        n = int(text)
    except ValueError:
        raise ConfigurationError(f"{what}: {text!r} is not an integer") from None
    if not lo <= n <= hi:
        raise ConfigurationError(f"{what} must be in {lo}..{hi}, got {n}")
    return n


def parse_threads(text: str) -> int:
    return parse_int(text, 1, 32767, "number of threads")


def parse_data_spec(value: str) -> GenerationBounds:
    avg_cols, avg_size = split_colon_separated("data", value, 2, 2)
    return GenerationBounds.from_averages(
        parse_int(avg_cols, 1, 2**30, "average columns per key"),
        parse_int(avg_size, 1, 2**30, "average data size"),
    )


def parse_write_spec(value: str, multi_put: bool = False) -> WriteSpec:
    parts = split_colon_separated("write", value, 2, 3)
    bounds = GenerationBounds.from_averages(
        parse_int(parts[0], 1, 2**30, "average columns per key"),
        parse_int(parts[1], 1, 2**30, "average data size"),
    )
    threads = parse_threads(parts[2]) if len(parts) > 2 else DEFAULT_NUM_THREADS
    return WriteSpec(bounds=bounds, threads=threads, multi_put=multi_put)


def parse_read_spec(
    value: str,
    max_errors: int = DEFAULT_MAX_ERRORS,
    key_window: int = DEFAULT_KEY_WINDOW,
) -> ReadSpec:
    parts = split_colon_separated("read", value, 1, 2)
    verify_percent = parse_int(parts[0], 0, 100, "verify percent")
    threads = parse_threads(parts[1]) if len(parts) > 1 else DEFAULT_NUM_THREADS
    if max_errors < 0:
        raise ConfigurationError(f"max read errors must be >= 0, got {max_errors}")
    if key_window < 0:
        raise ConfigurationError(f"key window must be >= 0, got {key_window}")
    return ReadSpec(
        verify_percent=verify_percent,
        threads=threads,
        max_errors=max_errors,
        key_window=key_window,
    )


def resolve_bounds(write: WriteSpec | None, data: GenerationBounds | None) -> GenerationBounds:
    """Generation bounds come from --write, or from --data for a read-only pass."""
    if write is not None:
        if data is not None and data != write.bounds:
            raise ConfigurationError("--data disagrees with the sizes given to --write")
        return write.bounds
    if data is None:
        raise ConfigurationError(
            f"a read-only pass needs --data {USAGE_DATA} matching the earlier write"
        )
    return data


def describe(options: LoadTestOptions) -> list[str]:
    lines = []
    b = options.bounds
    if options.write is not None:
        lines.append(f"Multi-puts: {options.write.multi_put}")
        lines.append(f"Columns per key: {b.min_cols}..{b.max_cols}")
        lines.append(f"Data size per column: {b.min_size}..{b.max_size}")
        lines.append(f"Writer threads: {options.write.threads}")
    if options.read is not None:
        lines.append(f"Percent of keys to verify: {options.read.verify_percent}")
        lines.append(f"Reader threads: {options.read.threads}")
        lines.append(f"Max read errors: {options.read.max_errors}")
        lines.append(f"Key window: {options.read.key_window}")
    lines.append(f"Key range: {options.key_range}")
    return lines


# -----------------------------
# Run
# -----------------------------
def run_load_test(options: LoadTestOptions, store: Store) -> RunReport:
    writer: MultiThreadedWriter | None = None
    reader: MultiThreadedReader | None = None

    if options.write is not None:
        b = options.bounds
        writer = MultiThreadedWriter(store, progress_interval=options.progress_interval)
        writer.configure(
            multi_put=options.write.multi_put,
            cols_range=(b.min_cols, b.max_cols),
            size_range=(b.min_size, b.max_size),
        )

    if options.read is not None:
        reader = MultiThreadedReader(
            store,
            options.bounds,
            progress_interval=options.progress_interval,
            seed=options.seed,
        )
        reader.configure(
            verify_percent=options.read.verify_percent,
            max_errors=options.read.max_errors,
            key_window=options.read.key_window,
        )

    if writer is not None and reader is not None:
        print("[setup] concurrent read/write workload: linking readers to the write watermark")
        reader.link_to_writer(writer.link())

    write_result: WriteResult | None = None
    read_result: ReadResult | None = None
    try:
        if writer is not None:
            print("[write] starting to write data...")
            writer.start(options.key_range, options.write.threads)
        if reader is not None:
            print("[read] starting to read data...")
            reader.start(options.key_range, options.read.threads)

        if writer is not None:
            write_result = writer.wait_for_finish()
        if reader is not None:
            read_result = reader.wait_for_finish()
    except KeyboardInterrupt:
        print("[stop] interrupted; letting in-flight operations finish...")
        for action in (writer, reader):
            if action is not None:
                action.stop()
        if writer is not None and writer.started:
            write_result = writer.wait_for_finish()
        if reader is not None and reader.started:
            read_result = reader.wait_for_finish()

    report = RunReport(write=write_result, read=read_result)
    for line in summarize(report):
        print(line)
    return report


def summarize(report: RunReport) -> list[str]:
    lines = []
    w = report.write
    if w is not None:
        lines.append(
            f"[done] write: keys={w.keys_written:,} cols={w.columns_written:,} "
            f"failed={len(w.failed_keys)} watermark={w.watermark}"
        )
    r = report.read
    if r is not None:
        lines.append(
            f"[done] read: status={r.status.value} keys={r.keys_read:,} "
            f"verified={r.verified:,} errors={r.errors} unreachable={r.unreachable}"
        )
        if r.error_keys:
            shown = ", ".join(str(k) for k in r.error_keys[:20])
            more = " ..." if len(r.error_keys) > 20 else ""
            lines.append(f"[done] keys with errors: {shown}{more}")
    return lines
