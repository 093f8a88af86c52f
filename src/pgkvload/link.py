from __future__ import annotations

from typing import Protocol


class WatermarkSource(Protocol):
    def watermark(self) -> int: ...

    def finished(self) -> bool: ...


class WriterLink:
    """
    Read-only view of a writer handed to a reader.

    Only the watermark crosses over, plus whether it can still move.
    """

    __slots__ = ("_source",)

    def __init__(self, source: WatermarkSource):
        self._source = source

    def watermark(self) -> int:
        return self._source.watermark()

    def finished(self) -> bool:
        return self._source.finished()

    def readable_up_to(self, last_key: int, key_window: int) -> int:
        """
        Highest key a reader may touch right now.

        The window is waived once the whole range is written, else the last
        key_window keys would never become readable.
        """
        mark = self.watermark()
        if mark >= last_key:
            return last_key
        return mark - key_window
