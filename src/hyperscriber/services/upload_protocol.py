from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

from hyperscriber.types import ChunkOutcome, ChunkRange, UploadSession


class ChunkProtocol(ABC):
    """Wire strategy for pushing one byte range to a resumable session."""

    name: str
    method: str

    @abstractmethod
    def headers_for(self, chunk: ChunkRange, session: UploadSession) -> dict[str, str]:
        ...

    @abstractmethod
    def classify(self, response: httpx.Response, chunk: ChunkRange) -> ChunkOutcome:
        ...


class CommandChunkProtocol(ChunkProtocol):
    """Explicit offset plus an ``upload`` / ``upload, finalize`` directive."""

    name = "command"
    method = "POST"

    def headers_for(self, chunk: ChunkRange, session: UploadSession) -> dict[str, str]:
        return {
            "Content-Type": session.content_type,
            "X-Goog-Upload-Offset": str(chunk.offset),
            "X-Goog-Upload-Command": "upload, finalize" if chunk.is_final else "upload",
        }

    def classify(self, response: httpx.Response, chunk: ChunkRange) -> ChunkOutcome:
        if not response.is_success:
            return "error"
        return "complete" if chunk.is_final else "continue"


class RangeChunkProtocol(ChunkProtocol):
    """``Content-Range`` addressed chunks; 308 means resume incomplete."""

    name = "range"
    method = "PUT"

    def headers_for(self, chunk: ChunkRange, session: UploadSession) -> dict[str, str]:
        return {
            "Content-Type": session.content_type,
            "Content-Range": f"bytes {chunk.offset}-{chunk.end - 1}/{session.total_size}",
        }

    def classify(self, response: httpx.Response, chunk: ChunkRange) -> ChunkOutcome:
        if response.status_code == 308 and not chunk.is_final:
            return "continue"
        if response.status_code in (200, 201) and chunk.is_final:
            return "complete"
        return "error"


_PROTOCOLS: dict[str, type[ChunkProtocol]] = {
    CommandChunkProtocol.name: CommandChunkProtocol,
    RangeChunkProtocol.name: RangeChunkProtocol,
}


def protocol_for(name: str) -> ChunkProtocol:
    try:
        return _PROTOCOLS[name.strip().lower()]()
    except KeyError:
        supported = ", ".join(sorted(_PROTOCOLS))
        raise ValueError(f"Unknown upload protocol {name!r} (supported: {supported})") from None
