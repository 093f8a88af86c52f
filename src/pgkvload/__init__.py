"""pgkvload: concurrent write/read-verify load tester for a sorted key-value table."""

from __future__ import annotations

from .errors import ConfigurationError, LoadTestError, StoreError
from .generator import GeneratedRecord, GenerationBounds, generate
from .keys import KeyPartitioner, KeyRange
from .reader import MultiThreadedReader, ReadResult, ReadStatus
from .storage import MemoryStore, PostgresStore
from .watermark import WriteProgress
from .writer import MultiThreadedWriter, WriteResult

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "GeneratedRecord",
    "GenerationBounds",
    "KeyPartitioner",
    "KeyRange",
    "LoadTestError",
    "MemoryStore",
    "MultiThreadedReader",
    "MultiThreadedWriter",
    "PostgresStore",
    "ReadResult",
    "ReadStatus",
    "StoreError",
    "WriteProgress",
    "WriteResult",
    "generate",
]
