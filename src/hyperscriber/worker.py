from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from threading import Event, Thread

from hyperscriber.db.jobs import JobsRepository
from hyperscriber.db.transcripts import TranscriptsRepository
from hyperscriber.services.http import redact
from hyperscriber.services.storage import StorageService
from hyperscriber.services.transcriber import TranscriptionDispatcher
from hyperscriber.types import UploadTrace

logger = logging.getLogger(__name__)


class BackgroundWorker:
    def __init__(
        self,
        *,
        jobs: JobsRepository,
        transcripts: TranscriptsRepository,
        dispatcher: TranscriptionDispatcher,
        storage: StorageService,
        poll_interval_seconds: int,
    ) -> None:
        self.jobs = jobs
        self.transcripts = transcripts
        self.dispatcher = dispatcher
        self.storage = storage
        self.poll_interval_seconds = poll_interval_seconds
        self._stop_event = Event()
        self._thread = Thread(target=self._run_loop, name="hyperscriber-worker", daemon=True)

    def start(self) -> None:
        if not self._thread.is_alive():
            self._thread.start()

    def stop(self, timeout_seconds: float = 10.0) -> None:
        self._stop_event.set()
        self._thread.join(timeout=timeout_seconds)

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive() and not self._stop_event.is_set()

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            job = self.jobs.claim_next()
            if job is None:
                self._stop_event.wait(self.poll_interval_seconds)
                continue

            job_id = str(job["id"])
            trace = UploadTrace()
            try:
                logger.info("Processing job %s", job_id)
                self._process_job(
                    job_id=job_id,
                    file_path=str(job["file_path"]),
                    mime_type=str(job["mime_type"]),
                    media_kind=str(job["media_kind"]),
                    complex=bool(job["complex"]),
                    trace=trace,
                )
                logger.info("Completed job %s", job_id)
            except Exception as exc:  # pylint: disable=broad-except
                message = str(exc).strip() or exc.__class__.__name__
                logger.exception("Job %s failed during %s: %s", job_id, trace.stage, message)
                if trace.session is not None:
                    self.jobs.set_remote_session(job_id, redact(trace.session.target_url))
                if trace.handle is not None:
                    self.jobs.set_remote_file(job_id, trace.handle.resource_name, trace.handle.uri)
                self.jobs.mark_failed(job_id, message[:2000])

    def _process_job(
        self,
        *,
        job_id: str,
        file_path: str,
        mime_type: str,
        media_kind: str,
        complex: bool,
        trace: UploadTrace | None = None,
    ) -> None:
        trace = trace if trace is not None else UploadTrace()
        source_path = Path(file_path)
        if not source_path.exists():
            raise RuntimeError(f"Media file not found: {source_path}")

        def on_progress(percent: int) -> None:
            self.jobs.set_progress(job_id, percent)
            if percent == 100:
                self.jobs.set_status(job_id, "generating")
            elif trace.handle is not None and trace.stage == "uploading":
                self.jobs.set_remote_file(job_id, trace.handle.resource_name, trace.handle.uri)
                self.jobs.set_status(job_id, "processing")

        result = asyncio.run(
            self.dispatcher.run(
                source_path,
                mime_type,
                complex,
                on_progress=on_progress,
                trace=trace,
            )
        )

        size_bytes = source_path.stat().st_size
        persisted = self.storage.persist(
            job_id=job_id,
            file_name=source_path.name,
            mime_type=mime_type,
            size_bytes=size_bytes,
            model=result.model,
            text=result.text,
        )
        self.transcripts.upsert(
            job_id=job_id,
            file_name=source_path.name,
            file_path=str(source_path),
            mime_type=mime_type,
            media_kind=media_kind,
            size_bytes=size_bytes,
            model=result.model,
            remote_uri=result.file_uri,
            path=persisted["path"],
            transcript_text=result.text,
        )
        self.jobs.set_remote_file(job_id, result.resource_name, result.file_uri)
        self.jobs.mark_completed(job_id, result.model, persisted["path"])
