"""Contiguous-prefix watermark, fed fixed out-of-order completion sequences."""

import random
import threading

import pytest

from pgkvload.watermark import WriteProgress


def feed(start, keys):
    progress = WriteProgress(start)
    return [progress.record_completion(k) for k in keys], progress


class TestWriteProgress:
    def test_initial(self):
        assert WriteProgress(0).watermark() == -1
        assert WriteProgress(100).watermark() == 99

    def test_in_order(self):
        marks, _ = feed(0, [0, 1, 2, 3])
        assert marks == [0, 1, 2, 3]

    def test_out_of_order(self):
        marks, progress = feed(0, [2, 0, 1, 4, 3, 5])
        assert marks == [-1, 0, 2, 2, 4, 5]
        assert progress.pending == 0
        assert progress.completed == 6

    def test_gap_holds_watermark(self):
        marks, progress = feed(10, [11, 12, 13, 15])
        assert marks == [9, 9, 9, 9]
        assert progress.pending == 4
        assert progress.record_completion(10) == 13
        assert progress.pending == 1
        assert progress.record_completion(14) == 15

    def test_reverse_order(self):
        marks, _ = feed(0, list(range(9, -1, -1)))
        assert marks == [-1] * 9 + [9]

    def test_duplicate_completion_rejected(self):
        progress = WriteProgress(0)
        progress.record_completion(0)
        progress.record_completion(5)
        with pytest.raises(ValueError):
            progress.record_completion(0)
        with pytest.raises(ValueError):
            progress.record_completion(5)

    def test_concurrent_completions_never_regress(self):
        keys = list(range(5000))
        random.Random(7).shuffle(keys)
        progress = WriteProgress(0)
        chunks = [keys[i::4] for i in range(4)]
        done = threading.Event()
        regressions = []

        def observe():
            last = -1
            while not done.is_set():
                mark = progress.watermark()
                if mark < last:
                    regressions.append((last, mark))
                last = mark

        def complete(chunk):
            for k in chunk:
                progress.record_completion(k)

        observer = threading.Thread(target=observe)
        observer.start()
        workers = [threading.Thread(target=complete, args=(c,)) for c in chunks]
        for t in workers:
            t.start()
        for t in workers:
            t.join()
        done.set()
        observer.join()

        assert regressions == []
        assert progress.watermark() == 4999
        assert progress.pending == 0
