from __future__ import annotations

import asyncio
import logging

import httpx

from hyperscriber.config import DEFAULT_CHUNK_SIZE
from hyperscriber.errors import EmptyMediaError, MediaSourceError, TranscriptionCancelled, UploadError
from hyperscriber.services.byte_source import ByteRangeSource
from hyperscriber.services.http import excerpt, json_body, send
from hyperscriber.services.progress import ProgressCallback, ProgressReporter
from hyperscriber.services.remote_file import parse_remote_file
from hyperscriber.services.upload_protocol import ChunkProtocol, CommandChunkProtocol
from hyperscriber.types import ChunkRange, RemoteFileHandle, UploadSession, UploadTrace

logger = logging.getLogger(__name__)


class ChunkUploader:
    def __init__(
        self,
        client: httpx.AsyncClient,
        protocol: ChunkProtocol | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        trace: UploadTrace | None = None,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.client = client
        self.protocol = protocol or CommandChunkProtocol()
        self.chunk_size = chunk_size
        self.trace = trace if trace is not None else UploadTrace()

    async def run(
        self,
        session: UploadSession,
        source: ByteRangeSource,
        on_progress: ProgressReporter | ProgressCallback | None = None,
        cancel: asyncio.Event | None = None,
    ) -> RemoteFileHandle:
        total = session.total_size
        if total <= 0:
            raise EmptyMediaError("Cannot upload an empty file")
        if len(source) != total:
            raise MediaSourceError(f"Source holds {len(source)} bytes but the session declares {total}")

        reporter = on_progress if isinstance(on_progress, ProgressReporter) else ProgressReporter(on_progress)
        self.trace.session = session
        self.trace.stage = "uploading"

        offset = 0
        while offset < total:
            if cancel is not None and cancel.is_set():
                raise TranscriptionCancelled(self.trace)

            end = min(offset + self.chunk_size, total)
            chunk = ChunkRange(offset=offset, length=end - offset, is_final=end == total)
            response = await send(
                self.client,
                self.protocol.method,
                session.target_url,
                action=f"Chunk upload at offset {offset}",
                headers=self.protocol.headers_for(chunk, session),
                content=source.slice(chunk.offset, chunk.end),
            )

            outcome = self.protocol.classify(response, chunk)
            if outcome == "error":
                raise UploadError(offset, response.status_code, response.reason_phrase, excerpt(response))

            if outcome == "complete":
                handle = parse_remote_file(json_body(response, "Final chunk upload"))
                self.trace.handle = handle
                offset = end
                self.trace.confirmed_offset = offset
                reporter.upload(offset, total)
                logger.info(
                    "Finalized upload of %s as %s (state %s)",
                    session.display_name,
                    handle.resource_name,
                    handle.state,
                )
                return handle

            offset = end
            self.trace.confirmed_offset = offset
            reporter.upload(offset, total)

        # Only reachable when a protocol reports "continue" for the final chunk.
        raise UploadError(offset, 0, "incomplete", "upload loop finished without a file resource")
