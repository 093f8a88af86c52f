"""
Deterministic record generation.

Every value written by a writer can be rebuilt later by a reader from nothing
but the key and the generation bounds:

- column count is drawn from default_rng(SeedSequence([key]))
- each column's size and payload come from default_rng(SeedSequence([key, col]))
- each payload starts with "<key>:<col>:" so a corrupted value is easy to place

No state, no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .errors import ConfigurationError


@dataclass(frozen=True)
class GenerationBounds:
    min_cols: int
    max_cols: int
    min_size: int
    max_size: int

    def __post_init__(self) -> None:
        if self.min_cols < 1:
            raise ConfigurationError(f"min_cols must be >= 1, got {self.min_cols}")
        if self.min_cols > self.max_cols:
            raise ConfigurationError(
                f"columns per key: min {self.min_cols} > max {self.max_cols}"
            )
        if self.min_size < 0:
            raise ConfigurationError(f"min_size must be >= 0, got {self.min_size}")
        if self.min_size > self.max_size:
            raise ConfigurationError(
                f"data size per column: min {self.min_size} > max {self.max_size}"
            )

    @classmethod
    def from_averages(cls, avg_cols: int, avg_size: int) -> "GenerationBounds":
        """Bounds used by the --write option: cols 1..2*avg, size avg/2..avg*3/2."""
        if avg_cols < 1:
            raise ConfigurationError(f"average columns per key must be >= 1, got {avg_cols}")
        if avg_size < 1:
            raise ConfigurationError(f"average data size must be >= 1, got {avg_size}")
        return cls(
            min_cols=1,
            max_cols=2 * avg_cols,
            min_size=avg_size // 2,
            max_size=avg_size * 3 // 2,
        )


@dataclass(frozen=True)
class GeneratedRecord:
    key: int
    columns: dict[int, bytes]

    @property
    def num_cols(self) -> int:
        return len(self.columns)

    @property
    def num_bytes(self) -> int:
        return sum(len(v) for v in self.columns.values())


def column_header(key: int, col: int) -> bytes:
    return f"{key}:{col}:".encode("ascii")


def generate_value(key: int, col: int, bounds: GenerationBounds) -> bytes:
    rng = np.random.default_rng(np.random.SeedSequence([key, col]))
    size = int(rng.integers(bounds.min_size, bounds.max_size + 1))
    if size <= 0:
        return b""
    header = column_header(key, col)
    if len(header) >= size:
        return header[:size]
    return header + rng.bytes(size - len(header))


def num_columns(key: int, bounds: GenerationBounds) -> int:
    rng = np.random.default_rng(np.random.SeedSequence([key]))
    return int(rng.integers(bounds.min_cols, bounds.max_cols + 1))


def generate(key: int, bounds: GenerationBounds) -> GeneratedRecord:
    if key < 0:
        raise ValueError(f"keys must be non-negative, got {key}")
    n = num_columns(key, bounds)
    return GeneratedRecord(
        key=key,
        columns={col: generate_value(key, col, bounds) for col in range(n)},
    )


def diff_record(
    expected: GeneratedRecord, actual: dict[int, bytes] | None
) -> list[str]:
    """
    Compare a stored row with its regenerated record.

    Returns one human readable line per problem (empty list == match):
    missing row, missing column, unexpected column, or mismatched bytes.
    """
    if actual is None:
        return [f"key {expected.key}: no data returned"]

    problems: list[str] = []
    for col, value in expected.columns.items():
        got = actual.get(col)
        if got is None:
            problems.append(f"key {expected.key}: column {col} missing")
        elif bytes(got) != value:
            problems.append(
                f"key {expected.key}: column {col} mismatch "
                f"(expected {len(value)} bytes, got {len(got)} bytes, "
                f"head={bytes(got[:24])!r})"
            )
    for col in sorted(set(actual) - set(expected.columns)):
        problems.append(f"key {expected.key}: unexpected column {col}")
    return problems
