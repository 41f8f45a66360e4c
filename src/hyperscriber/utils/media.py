from __future__ import annotations

import mimetypes
from pathlib import Path

from hyperscriber.errors import UnsupportedMediaError
from hyperscriber.types import MediaKind

DEFAULT_MIME_TYPE = "application/octet-stream"
MAX_FILE_SIZE_WARNING = 2 * 1024 * 1024 * 1024


def guess_mime_type(path: Path | str) -> str | None:
    mime_type, _ = mimetypes.guess_type(str(path))
    return mime_type


def resolve_mime_type(mime_type: str | None, path: Path | str | None) -> str:
    if mime_type:
        return mime_type
    if path is not None:
        guessed = guess_mime_type(path)
        if guessed:
            return guessed
    return DEFAULT_MIME_TYPE


def media_kind(mime_type: str) -> MediaKind:
    if mime_type.startswith("video/"):
        return "video"
    if mime_type.startswith("audio/"):
        return "audio"
    raise UnsupportedMediaError(f"Please upload a valid video or audio file (got {mime_type})")


def default_complexity(kind: MediaKind) -> bool:
    # Video usually carries written formulas, so it gets the deep model.
    return kind == "video"
