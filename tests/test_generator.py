"""Record generation: reproducible, bounded, self-describing."""

import pytest

from pgkvload.errors import ConfigurationError
from pgkvload.generator import (
    GeneratedRecord,
    GenerationBounds,
    column_header,
    diff_record,
    generate,
)


class TestBounds:
    def test_min_greater_than_max_cols(self):
        with pytest.raises(ConfigurationError):
            GenerationBounds(min_cols=5, max_cols=2, min_size=1, max_size=2)

    def test_min_greater_than_max_size(self):
        with pytest.raises(ConfigurationError):
            GenerationBounds(min_cols=1, max_cols=2, min_size=10, max_size=9)

    def test_zero_columns_rejected(self):
        with pytest.raises(ConfigurationError):
            GenerationBounds(min_cols=0, max_cols=2, min_size=1, max_size=2)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            GenerationBounds(min_cols=1, max_cols=1, min_size=-1, max_size=2)

    def test_from_averages(self):
        b = GenerationBounds.from_averages(10, 1024)
        assert (b.min_cols, b.max_cols) == (1, 20)
        assert (b.min_size, b.max_size) == (512, 1536)

    def test_from_averages_rejects_zero(self):
        with pytest.raises(ConfigurationError):
            GenerationBounds.from_averages(0, 10)


class TestGenerate:
    def test_same_key_same_bytes(self, bounds):
        for key in (0, 1, 42, 10**12, 2**63 - 2):
            assert generate(key, bounds) == generate(key, bounds)

    def test_different_keys_differ(self, bounds):
        assert generate(1, bounds).columns != generate(2, bounds).columns

    def test_column_count_and_sizes_in_bounds(self, bounds):
        seen_counts = set()
        for key in range(500):
            rec = generate(key, bounds)
            assert bounds.min_cols <= rec.num_cols <= bounds.max_cols
            assert list(rec.columns) == list(range(rec.num_cols))
            for value in rec.columns.values():
                assert bounds.min_size <= len(value) <= bounds.max_size
            seen_counts.add(rec.num_cols)
        assert seen_counts == {1, 2, 3, 4}

    def test_payload_names_key_and_column(self, bounds):
        rec = generate(4242, bounds)
        for col, value in rec.columns.items():
            assert value.startswith(column_header(4242, col)[: len(value)])

    def test_fixed_size(self):
        b = GenerationBounds(min_cols=3, max_cols=3, min_size=64, max_size=64)
        rec = generate(7, b)
        assert rec.num_cols == 3
        assert rec.num_bytes == 3 * 64

    def test_tiny_values_are_truncated_header(self):
        b = GenerationBounds(min_cols=1, max_cols=1, min_size=2, max_size=2)
        assert generate(12345, b).columns[0] == b"12"

    def test_zero_size(self):
        b = GenerationBounds(min_cols=2, max_cols=2, min_size=0, max_size=0)
        assert generate(9, b).columns == {0: b"", 1: b""}

    def test_negative_key_rejected(self, bounds):
        with pytest.raises(ValueError):
            generate(-1, bounds)


class TestDiffRecord:
    def test_match(self, bounds):
        rec = generate(3, bounds)
        assert diff_record(rec, dict(rec.columns)) == []

    def test_missing_row(self, bounds):
        problems = diff_record(generate(3, bounds), None)
        assert problems == ["key 3: no data returned"]

    def test_missing_extra_and_mismatched_columns(self):
        rec = GeneratedRecord(key=5, columns={0: b"aaa", 1: b"bbb"})
        problems = diff_record(rec, {0: b"aaX", 7: b"zzz"})
        assert len(problems) == 3
        assert any("column 0 mismatch" in p for p in problems)
        assert any("column 1 missing" in p for p in problems)
        assert any("unexpected column 7" in p for p in problems)

    def test_memoryview_values_compare_by_bytes(self):
        rec = GeneratedRecord(key=1, columns={0: b"abc"})
        assert diff_record(rec, {0: memoryview(b"abc")}) == []
