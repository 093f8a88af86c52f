import pytest

from fakes import BrokenStore, CountingStore, FailingStore
from pgkvload.errors import ConfigurationError
from pgkvload.generator import generate
from pgkvload.keys import KeyRange
from pgkvload.writer import MultiThreadedWriter


def make_writer(store, multi_put=True, cols=(1, 4), sizes=(10, 50)):
    writer = MultiThreadedWriter(store, progress_interval=0)
    writer.configure(multi_put=multi_put, cols_range=cols, size_range=sizes)
    return writer


class TestWriterScenario:
    def test_writes_whole_range(self, store, bounds):
        writer = make_writer(store)
        writer.start(KeyRange(0, 100), 4)
        result = writer.wait_for_finish()

        assert result.ok
        assert result.watermark == 99
        assert writer.watermark() == 99
        assert result.keys_written == 100
        assert store.keys() == list(range(100))
        for key in range(100):
            row = store.read(key)
            assert 1 <= len(row) <= 4
            assert row == generate(key, bounds).columns
        assert result.columns_written == sum(len(store.read(k)) for k in range(100))

    def test_non_zero_start(self, store):
        writer = make_writer(store)
        assert writer.watermark() == -1
        writer.start(KeyRange(500, 600), 3)
        result = writer.wait_for_finish()
        assert result.watermark == 599
        assert store.keys() == list(range(500, 600))

    def test_finished_flag(self, store):
        writer = make_writer(store)
        assert not writer.finished()
        writer.start(KeyRange(0, 10), 2)
        writer.wait_for_finish()
        assert writer.finished()

    def test_progress_line(self, store):
        writer = make_writer(store)
        writer.start(KeyRange(0, 100), 4)
        writer.wait_for_finish()
        line = writer.progress_line()
        assert "keys=100" in line
        assert "watermark=99" in line

    def test_keys_claimed(self, store):
        writer = make_writer(store)
        assert writer.keys_claimed == 0
        writer.start(KeyRange(0, 100), 4)
        writer.wait_for_finish()
        assert writer.keys_claimed == 100


class TestWriteModes:
    def test_multi_put_is_one_call_per_key(self):
        store = CountingStore()
        writer = make_writer(store, multi_put=True)
        writer.start(KeyRange(0, 50), 2)
        writer.wait_for_finish()
        assert store.write_calls == 50

    def test_single_put_is_one_call_per_column(self):
        store = CountingStore()
        writer = make_writer(store, multi_put=False)
        writer.start(KeyRange(0, 50), 2)
        result = writer.wait_for_finish()
        assert store.write_calls == result.columns_written
        assert store.write_calls > 50


class TestWriteFailures:
    def test_failed_key_holds_watermark(self, capsys):
        store = FailingStore(fail_writes={10})
        writer = make_writer(store)
        writer.start(KeyRange(0, 100), 4)
        result = writer.wait_for_finish()

        assert not result.ok
        assert result.failed_keys == (10,)
        assert result.watermark == 9
        assert result.keys_written == 99
        assert 10 not in store
        assert len(store) == 99
        assert "failed to write key 10" in capsys.readouterr().err

    def test_unexpected_exception_surfaces(self):
        writer = make_writer(BrokenStore())
        writer.start(KeyRange(0, 10), 2)
        with pytest.raises(RuntimeError, match="boom"):
            writer.wait_for_finish()


class TestWriterLifecycle:
    def test_start_requires_configure(self, store):
        writer = MultiThreadedWriter(store, progress_interval=0)
        with pytest.raises(ConfigurationError):
            writer.start(KeyRange(0, 10), 1)

    def test_bad_bounds_fail_at_configure(self, store):
        writer = MultiThreadedWriter(store, progress_interval=0)
        with pytest.raises(ConfigurationError):
            writer.configure(multi_put=False, cols_range=(3, 1), size_range=(1, 2))

    @pytest.mark.parametrize("threads", [0, -1, 40000])
    def test_bad_thread_count(self, store, threads):
        writer = make_writer(store)
        with pytest.raises(ConfigurationError):
            writer.start(KeyRange(0, 10), threads)

    def test_cannot_start_twice(self, store):
        writer = make_writer(store)
        writer.start(KeyRange(0, 10), 1)
        with pytest.raises(ConfigurationError):
            writer.start(KeyRange(0, 10), 1)
        writer.wait_for_finish()

    def test_cannot_configure_after_start(self, store):
        writer = make_writer(store)
        writer.start(KeyRange(0, 10), 1)
        with pytest.raises(ConfigurationError):
            writer.configure(multi_put=True, cols_range=(1, 1), size_range=(1, 1))
        writer.wait_for_finish()

    def test_wait_without_start(self, store):
        with pytest.raises(ConfigurationError):
            make_writer(store).wait_for_finish()
