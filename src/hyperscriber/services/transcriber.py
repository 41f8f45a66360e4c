from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import BinaryIO, Union

import httpx

from hyperscriber.config import (
    DEFAULT_API_HOST,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_DEEP_MODEL,
    DEFAULT_FAST_MODEL,
    DEFAULT_THINKING_BUDGET,
    Settings,
)
from hyperscriber.errors import ConfigError, EmptyMediaError, TranscriptionCancelled
from hyperscriber.services.byte_source import ByteRangeSource
from hyperscriber.services.generator import TRANSCRIPTION_PROMPT, GeminiGenerator
from hyperscriber.services.poller import ReadinessPoller, Sleep
from hyperscriber.services.progress import ProgressCallback, ProgressReporter
from hyperscriber.services.session import SessionInitiator
from hyperscriber.services.upload_protocol import ChunkProtocol, protocol_for
from hyperscriber.services.uploader import ChunkUploader
from hyperscriber.types import TranscriptionRequest, TranscriptionResult, UploadTrace
from hyperscriber.utils.media import MAX_FILE_SIZE_WARNING, resolve_mime_type

logger = logging.getLogger(__name__)

EMPTY_TRANSCRIPTION = "No transcription generated."

MediaInput = Union[Path, str, BinaryIO]


class TranscriptionDispatcher:
    """Runs upload, readiness polling and generation for one file at a time.

    Each call owns its session, byte source, progress reporter and trace, so
    a single dispatcher can serve concurrent requests.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        api_host: str = DEFAULT_API_HOST,
        deep_model: str = DEFAULT_DEEP_MODEL,
        fast_model: str = DEFAULT_FAST_MODEL,
        thinking_budget: int = DEFAULT_THINKING_BUDGET,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        protocol: ChunkProtocol | str = "command",
        poll_interval_seconds: float = 2.0,
        timeout_seconds: float = 600.0,
        client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.api_key = api_key
        self.api_host = api_host.rstrip("/")
        self.deep_model = deep_model
        self.fast_model = fast_model
        self.thinking_budget = thinking_budget
        self.chunk_size = chunk_size
        self.protocol = protocol_for(protocol) if isinstance(protocol, str) else protocol
        self.poll_interval_seconds = poll_interval_seconds
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: object) -> TranscriptionDispatcher:
        options: dict[str, object] = {
            "api_host": settings.api_host,
            "deep_model": settings.deep_model,
            "fast_model": settings.fast_model,
            "thinking_budget": settings.thinking_budget,
            "chunk_size": settings.chunk_size,
            "protocol": settings.upload_protocol,
            "poll_interval_seconds": settings.readiness_poll_seconds,
            "timeout_seconds": settings.http_timeout_seconds,
        }
        options.update(overrides)
        return cls(settings.gemini_api_key, **options)  # type: ignore[arg-type]

    async def transcribe(
        self,
        file: MediaInput,
        mime_type: str | None,
        complexity_hint: bool,
        on_progress: ProgressCallback | None = None,
        cancel: asyncio.Event | None = None,
        trace: UploadTrace | None = None,
    ) -> str:
        result = await self.run(
            file,
            mime_type,
            complexity_hint,
            on_progress=on_progress,
            cancel=cancel,
            trace=trace,
        )
        return result.text

    async def run(
        self,
        file: MediaInput,
        mime_type: str | None,
        complexity_hint: bool,
        *,
        on_progress: ProgressCallback | None = None,
        cancel: asyncio.Event | None = None,
        trace: UploadTrace | None = None,
    ) -> TranscriptionResult:
        if not self.api_key:
            raise ConfigError("API key is not configured (set GEMINI_API_KEY)")

        trace = trace if trace is not None else UploadTrace()
        if self._client is not None:
            return await self._run(
                self._client, self.api_key, file, mime_type, complexity_hint, on_progress, cancel, trace
            )

        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            return await self._run(
                client, self.api_key, file, mime_type, complexity_hint, on_progress, cancel, trace
            )

    async def _run(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        file: MediaInput,
        mime_type: str | None,
        complexity_hint: bool,
        on_progress: ProgressCallback | None,
        cancel: asyncio.Event | None,
        trace: UploadTrace,
    ) -> TranscriptionResult:
        display_name = self._display_name(file)
        content_type = resolve_mime_type(mime_type, display_name)
        reporter = ProgressReporter(on_progress)

        with self._open_source(file) as source:
            total_size = len(source)
            if total_size == 0:
                raise EmptyMediaError(f"{display_name} is empty")
            if total_size > MAX_FILE_SIZE_WARNING:
                logger.warning("%s is %d bytes, above the 2 GiB API limit", display_name, total_size)

            reporter.start()
            session = await SessionInitiator(client, self.api_host).start(
                total_size, content_type, display_name, api_key
            )
            trace.session = session

            uploader = ChunkUploader(client, self.protocol, self.chunk_size, trace=trace)
            handle = await uploader.run(session, source, reporter, cancel=cancel)

        poller = ReadinessPoller(client, self.api_host, api_key, sleep=self._sleep, trace=trace)
        handle = await poller.await_active(handle, self.poll_interval_seconds, cancel=cancel)
        if cancel is not None and cancel.is_set():
            raise TranscriptionCancelled(trace)
        reporter.complete()

        request = TranscriptionRequest(
            file_uri=handle.uri,
            mime_type=content_type,
            model_tier="deep" if complexity_hint else "fast",
            prompt=TRANSCRIPTION_PROMPT,
        )
        model = self.deep_model if request.model_tier == "deep" else self.fast_model
        budget = self.thinking_budget if request.model_tier == "deep" else None
        trace.stage = "generating"
        trace.model = model
        logger.info("Generating transcription of %s with %s (%s tier)", handle.resource_name, model, request.model_tier)

        text = await GeminiGenerator(client, self.api_host, api_key).generate(request, model, budget)
        if not text:
            logger.warning("Model %s returned no text for %s", model, handle.resource_name)
            text = EMPTY_TRANSCRIPTION

        trace.stage = "completed"
        return TranscriptionResult(
            text=text,
            model=model,
            file_uri=handle.uri,
            resource_name=handle.resource_name,
        )

    @staticmethod
    def _display_name(file: MediaInput) -> str:
        if isinstance(file, (str, Path)):
            return Path(file).name
        name = getattr(file, "name", None)
        return Path(name).name if isinstance(name, str) and name else "upload"

    @staticmethod
    def _open_source(file: MediaInput) -> ByteRangeSource:
        if isinstance(file, (str, Path)):
            return ByteRangeSource.open(file)
        return ByteRangeSource(file)
