from pathlib import Path

from hyperscriber.db.database import Database
from hyperscriber.db.jobs import JobsRepository
from hyperscriber.db.transcripts import TranscriptsRepository
from hyperscriber.errors import ProcessingFailedError, UploadError
from hyperscriber.services.storage import StorageService
from hyperscriber.types import RemoteFileHandle, TranscriptionResult, UploadSession, UploadTrace
from hyperscriber.worker import BackgroundWorker

SESSION_URL = "https://gemini.test/upload/v1beta/files?upload_id=sess-9&key=secret-key"


class FakeDispatcher:
    def __init__(self, fail: bool = False, fail_during_upload: bool = False) -> None:
        self.fail = fail
        self.fail_during_upload = fail_during_upload
        self.calls: list[tuple[Path, str, bool]] = []

    async def run(self, file, mime_type, complexity_hint, *, on_progress, cancel=None, trace=None) -> TranscriptionResult:
        self.calls.append((file, mime_type, complexity_hint))
        trace = trace or UploadTrace()
        trace.stage = "uploading"
        on_progress(0)
        trace.session = UploadSession(
            target_url=SESSION_URL, content_type=mime_type, total_size=10, display_name=Path(file).name
        )
        if self.fail_during_upload:
            raise UploadError(0, 503, "Service Unavailable", "backend busy")
        on_progress(50)
        trace.handle = RemoteFileHandle(
            uri="https://gemini.test/v1beta/files/f1", resource_name="files/f1", state="PROCESSING"
        )
        on_progress(99)
        trace.stage = "processing"
        if self.fail:
            raise ProcessingFailedError("File processing failed on the server for files/f1")
        on_progress(100)
        return TranscriptionResult(
            text="hello $x^2$ world",
            model="deep-model",
            file_uri=trace.handle.uri,
            resource_name=trace.handle.resource_name,
        )


def _worker(tmp_path: Path, dispatcher: FakeDispatcher) -> tuple[BackgroundWorker, JobsRepository, TranscriptsRepository]:
    db = Database(tmp_path / "test.sqlite3")
    jobs = JobsRepository(db)
    transcripts = TranscriptsRepository(db)
    worker = BackgroundWorker(
        jobs=jobs,
        transcripts=transcripts,
        dispatcher=dispatcher,  # type: ignore[arg-type]
        storage=StorageService(tmp_path / "data"),
        poll_interval_seconds=5,
    )
    return worker, jobs, transcripts


def test_worker_processes_job(tmp_path: Path) -> None:
    media = tmp_path / "lecture.mp4"
    media.write_bytes(b"fake-video")
    dispatcher = FakeDispatcher()
    worker, jobs, transcripts = _worker(tmp_path, dispatcher)

    job = jobs.enqueue(file_path=str(media), mime_type="video/mp4", media_kind="video", complex=True)
    claimed = jobs.claim_next()
    assert claimed is not None

    worker._process_job(
        job_id=str(job["id"]),
        file_path=str(media),
        mime_type="video/mp4",
        media_kind="video",
        complex=True,
    )

    assert dispatcher.calls == [(media, "video/mp4", True)]
    status = jobs.get(str(job["id"]))
    assert status is not None
    assert status["status"] == "completed"
    assert status["progress"] == 100
    assert status["remote_name"] == "files/f1"

    saved = transcripts.get_by_job_id(str(job["id"]))
    assert saved is not None
    assert saved["model"] == "deep-model"
    markdown = (Path(str(saved["path"])) / "transcript.md").read_text(encoding="utf-8")
    assert "# lecture.mp4" in markdown
    assert "hello $x^2$ world" in markdown


def _run_one_failing_job(worker: BackgroundWorker, jobs: JobsRepository) -> None:
    original_mark_failed = jobs.mark_failed

    def stop_after_one(job_id: str, error: str) -> None:
        original_mark_failed(job_id, error)
        worker._stop_event.set()

    jobs.mark_failed = stop_after_one  # type: ignore[method-assign]
    worker._run_loop()


def test_worker_records_failure_and_remote_file(tmp_path: Path) -> None:
    media = tmp_path / "talk.mp3"
    media.write_bytes(b"fake-audio")
    worker, jobs, _ = _worker(tmp_path, FakeDispatcher(fail=True))

    job = jobs.enqueue(file_path=str(media), mime_type="audio/mpeg", media_kind="audio", complex=False)
    _run_one_failing_job(worker, jobs)

    failed = jobs.get(str(job["id"]))
    assert failed is not None
    assert failed["status"] == "failed"
    assert "File processing failed" in failed["error"]
    assert failed["remote_name"] == "files/f1"
    assert failed["progress"] == 99
    assert failed["remote_session"] == SESSION_URL.replace("secret-key", "***")


def test_worker_keeps_session_when_upload_fails_before_finalize(tmp_path: Path) -> None:
    media = tmp_path / "talk.mp3"
    media.write_bytes(b"fake-audio")
    worker, jobs, _ = _worker(tmp_path, FakeDispatcher(fail_during_upload=True))

    job = jobs.enqueue(file_path=str(media), mime_type="audio/mpeg", media_kind="audio", complex=False)
    _run_one_failing_job(worker, jobs)

    failed = jobs.get(str(job["id"]))
    assert failed is not None
    assert failed["status"] == "failed"
    assert "Upload failed at offset 0: 503" in failed["error"]
    assert failed["remote_name"] is None
    assert failed["remote_uri"] is None
    assert failed["remote_session"] == "https://gemini.test/upload/v1beta/files?upload_id=sess-9&key=***"
    assert "secret-key" not in failed["remote_session"]
    assert failed["progress"] == 0
