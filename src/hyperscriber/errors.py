from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hyperscriber.types import UploadTrace


class TranscriptionError(RuntimeError):
    """Base class for every failure surfaced by the transcription pipeline."""


class ConfigError(TranscriptionError):
    pass


class ProtocolError(TranscriptionError):
    def __init__(self, message: str, *, status_code: int | None = None, detail: str = "") -> None:
        super().__init__(message if not detail else f"{message}: {detail}")
        self.status_code = status_code
        self.detail = detail


class AuthError(ProtocolError):
    pass


class NetworkError(TranscriptionError):
    pass


class UploadError(TranscriptionError):
    def __init__(self, offset: int, status_code: int, status_text: str, body_excerpt: str) -> None:
        super().__init__(
            f"Upload failed at offset {offset}: {status_code} {status_text} - {body_excerpt}"
        )
        self.offset = offset
        self.status_code = status_code
        self.status_text = status_text
        self.body_excerpt = body_excerpt


class ProcessingFailedError(TranscriptionError):
    pass


class GenerationError(TranscriptionError):
    pass


class TranscriptionCancelled(TranscriptionError):
    def __init__(self, trace: UploadTrace) -> None:
        super().__init__(f"Transcription cancelled during {trace.stage}")
        self.trace = trace


class OutOfRangeError(TranscriptionError, IndexError):
    pass


class UnsupportedMediaError(TranscriptionError, ValueError):
    pass


class MediaSourceError(TranscriptionError, ValueError):
    pass


class EmptyMediaError(MediaSourceError):
    pass
