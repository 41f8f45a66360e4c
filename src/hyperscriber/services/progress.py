from __future__ import annotations

from collections.abc import Callable

ProgressCallback = Callable[[int], None]

UPLOAD_CEILING = 99


class ProgressReporter:
    """Two-phase progress: upload percent capped at 99, then a single 100."""

    def __init__(self, callback: ProgressCallback | None) -> None:
        self._callback = callback
        self._last = -1
        self._completed = False

    @property
    def last(self) -> int:
        return max(self._last, 0)

    def upload(self, sent: int, total: int) -> None:
        if self._completed or total <= 0:
            return
        percent = min(round(100 * sent / total), UPLOAD_CEILING)
        self._emit(max(percent, self._last, 0))

    def start(self) -> None:
        if self._last < 0:
            self._emit(0)

    def complete(self) -> None:
        if self._completed:
            return
        self._completed = True
        self._emit(100)

    def _emit(self, value: int) -> None:
        self._last = value
        if self._callback is not None:
            self._callback(value)
