from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

JobStatus = Literal["queued", "uploading", "processing", "generating", "completed", "failed"]
TranscriptFormat = Literal["markdown", "text"]
MediaKind = Literal["video", "audio"]
FileState = Literal["PROCESSING", "ACTIVE", "FAILED"]
ModelTier = Literal["fast", "deep"]
ChunkOutcome = Literal["continue", "complete", "error"]
TraceStage = Literal["starting", "uploading", "processing", "generating", "completed"]


@dataclass(slots=True, frozen=True)
class UploadSession:
    target_url: str
    content_type: str
    total_size: int
    display_name: str


@dataclass(slots=True, frozen=True)
class ChunkRange:
    offset: int
    length: int
    is_final: bool

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass(slots=True)
class RemoteFileHandle:
    uri: str
    resource_name: str
    state: FileState
    mime_type: str | None = None


@dataclass(slots=True, frozen=True)
class TranscriptionRequest:
    file_uri: str
    mime_type: str
    model_tier: ModelTier
    prompt: str


@dataclass(slots=True)
class UploadTrace:
    """Last known remote state of one transcription request.

    Filled in as the pipeline advances so a caller that cancels or fails
    a request can still see which session and remote file it left behind.
    """

    stage: TraceStage = "starting"
    session: UploadSession | None = None
    handle: RemoteFileHandle | None = None
    confirmed_offset: int = 0
    model: str | None = None


@dataclass(slots=True)
class TranscriptionResult:
    text: str
    model: str
    file_uri: str
    resource_name: str
