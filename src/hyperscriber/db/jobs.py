from __future__ import annotations

import uuid
from typing import Any

from hyperscriber.db.database import Database
from hyperscriber.types import JobStatus, MediaKind

ACTIVE_STATUSES = ("queued", "uploading", "processing", "generating")


class JobsRepository:
    def __init__(self, db: Database) -> None:
        self.db = db

    def enqueue(self, *, file_path: str, mime_type: str, media_kind: MediaKind, complex: bool) -> dict[str, Any]:
        job_id = str(uuid.uuid4())
        with self.db.lock:
            self.db.conn.execute(
                """
                INSERT INTO jobs(id, file_path, mime_type, media_kind, complex, status)
                VALUES (?, ?, ?, ?, ?, 'queued')
                """,
                (job_id, file_path, mime_type, media_kind, int(complex)),
            )
            self.db.conn.commit()

        job = self.get(job_id)
        if job is None:
            raise RuntimeError("Failed to create job")
        return job

    def get(self, job_id: str) -> dict[str, Any] | None:
        row = self.db.conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        return dict(row) if row is not None else None

    def find_active_by_file_path(self, file_path: str) -> dict[str, Any] | None:
        placeholders = ",".join("?" for _ in ACTIVE_STATUSES)
        row = self.db.conn.execute(
            f"""
            SELECT * FROM jobs
            WHERE file_path = ? AND status IN ({placeholders})
            ORDER BY created_at ASC
            LIMIT 1
            """,
            (file_path, *ACTIVE_STATUSES),
        ).fetchone()
        return dict(row) if row is not None else None

    def claim_next(self) -> dict[str, Any] | None:
        with self.db.lock:
            self.db.conn.execute("BEGIN IMMEDIATE")
            row = self.db.conn.execute(
                """
                SELECT * FROM jobs
                WHERE status = 'queued'
                ORDER BY created_at ASC
                LIMIT 1
                """
            ).fetchone()
            if row is None:
                self.db.conn.commit()
                return None

            job_id = row["id"]
            self.db.conn.execute(
                """
                UPDATE jobs
                SET status = 'uploading', started_at = datetime('now')
                WHERE id = ?
                """,
                (job_id,),
            )
            self.db.conn.commit()

        return self.get(str(job_id))

    def set_status(self, job_id: str, status: JobStatus) -> None:
        with self.db.lock:
            self.db.conn.execute("UPDATE jobs SET status = ? WHERE id = ?", (status, job_id))
            self.db.conn.commit()

    def set_progress(self, job_id: str, progress: int) -> None:
        with self.db.lock:
            self.db.conn.execute(
                "UPDATE jobs SET progress = MAX(progress, ?) WHERE id = ?",
                (progress, job_id),
            )
            self.db.conn.commit()

    def set_remote_file(self, job_id: str, remote_name: str | None, remote_uri: str | None) -> None:
        with self.db.lock:
            self.db.conn.execute(
                "UPDATE jobs SET remote_name = ?, remote_uri = ? WHERE id = ?",
                (remote_name, remote_uri, job_id),
            )
            self.db.conn.commit()

    def set_remote_session(self, job_id: str, session_url: str | None) -> None:
        with self.db.lock:
            self.db.conn.execute(
                "UPDATE jobs SET remote_session = ? WHERE id = ?",
                (session_url, job_id),
            )
            self.db.conn.commit()

    def mark_completed(self, job_id: str, model: str, result_path: str) -> None:
        with self.db.lock:
            self.db.conn.execute(
                """
                UPDATE jobs
                SET status = 'completed', completed_at = datetime('now'), progress = 100,
                    model = ?, result_path = ?, error = NULL
                WHERE id = ?
                """,
                (model, result_path, job_id),
            )
            self.db.conn.commit()

    def mark_failed(self, job_id: str, error: str) -> None:
        with self.db.lock:
            self.db.conn.execute(
                """
                UPDATE jobs
                SET status = 'failed', completed_at = datetime('now'), error = ?
                WHERE id = ?
                """,
                (error, job_id),
            )
            self.db.conn.commit()
