from __future__ import annotations

import os
from pathlib import Path
from typing import BinaryIO

from hyperscriber.errors import OutOfRangeError


class ByteRangeSource:
    """Random access to byte ranges of a seekable binary stream.

    Only the requested range is ever read, so files larger than the
    available memory can be sliced one chunk at a time.
    """

    def __init__(self, stream: BinaryIO, total_size: int | None = None, *, owns_stream: bool = False) -> None:
        if not stream.seekable():
            raise ValueError("ByteRangeSource requires a seekable stream")
        self._stream = stream
        self._owns_stream = owns_stream
        if total_size is None:
            total_size = stream.seek(0, os.SEEK_END)
        self.total_size = int(total_size)

    @classmethod
    def open(cls, path: Path | str) -> ByteRangeSource:
        file_path = Path(path)
        stream = file_path.open("rb")
        return cls(stream, file_path.stat().st_size, owns_stream=True)

    def __len__(self) -> int:
        return self.total_size

    def __enter__(self) -> ByteRangeSource:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_stream:
            self._stream.close()

    def slice(self, offset: int, end: int) -> bytes:
        if not 0 <= offset < end <= self.total_size:
            raise OutOfRangeError(
                f"Invalid byte range [{offset}, {end}) for source of {self.total_size} bytes"
            )
        self._stream.seek(offset)
        data = self._stream.read(end - offset)
        if len(data) != end - offset:
            raise OutOfRangeError(
                f"Short read at offset {offset}: wanted {end - offset} bytes, got {len(data)}"
            )
        return data
