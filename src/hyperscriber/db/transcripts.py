from __future__ import annotations

from typing import Any

from hyperscriber.db.database import Database


class TranscriptsRepository:
    def __init__(self, db: Database) -> None:
        self.db = db

    def get_by_job_id(self, job_id: str) -> dict[str, Any] | None:
        row = self.db.conn.execute(
            "SELECT * FROM transcripts WHERE job_id = ? LIMIT 1",
            (job_id,),
        ).fetchone()
        return dict(row) if row is not None else None

    def upsert(
        self,
        *,
        job_id: str,
        file_name: str,
        file_path: str,
        mime_type: str,
        media_kind: str,
        size_bytes: int | None,
        model: str,
        remote_uri: str | None,
        path: str,
        transcript_text: str,
    ) -> None:
        word_count = len(transcript_text.split())
        with self.db.lock:
            self.db.conn.execute(
                """
                INSERT INTO transcripts(
                    job_id, file_name, file_path, mime_type, media_kind, size_bytes,
                    model, remote_uri, word_count, transcribed_at, path
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, datetime('now'), ?)
                ON CONFLICT(job_id) DO UPDATE SET
                    file_name = excluded.file_name,
                    file_path = excluded.file_path,
                    mime_type = excluded.mime_type,
                    media_kind = excluded.media_kind,
                    size_bytes = excluded.size_bytes,
                    model = excluded.model,
                    remote_uri = excluded.remote_uri,
                    word_count = excluded.word_count,
                    transcribed_at = datetime('now'),
                    path = excluded.path
                """,
                (
                    job_id,
                    file_name,
                    file_path,
                    mime_type,
                    media_kind,
                    size_bytes,
                    model,
                    remote_uri,
                    word_count,
                    path,
                ),
            )
            self.db.conn.execute("DELETE FROM transcripts_fts WHERE job_id = ?", (job_id,))
            self.db.conn.execute(
                """
                INSERT INTO transcripts_fts(job_id, file_name, transcript_text)
                VALUES (?, ?, ?)
                """,
                (job_id, file_name, transcript_text),
            )
            self.db.conn.commit()

    def list_transcripts(self, *, media_kind: str | None = None, limit: int = 20) -> list[dict[str, Any]]:
        query = "SELECT * FROM transcripts"
        params: list[Any] = []

        if media_kind:
            query += " WHERE media_kind = ?"
            params.append(media_kind)

        query += " ORDER BY transcribed_at DESC LIMIT ?"
        params.append(max(1, min(limit, 100)))

        rows = self.db.conn.execute(query, tuple(params)).fetchall()
        return [dict(row) for row in rows]

    def search(self, query: str, limit: int = 10) -> list[dict[str, Any]]:
        rows = self.db.conn.execute(
            """
            SELECT
                t.job_id,
                t.file_name,
                t.media_kind,
                t.model,
                t.path,
                t.transcribed_at,
                snippet(transcripts_fts, 2, '[', ']', ' ... ', 20) AS snippet,
                bm25(transcripts_fts) AS score
            FROM transcripts_fts
            JOIN transcripts AS t ON t.job_id = transcripts_fts.job_id
            WHERE transcripts_fts MATCH ?
            ORDER BY score
            LIMIT ?
            """,
            (query, max(1, min(limit, 50))),
        ).fetchall()
        return [dict(row) for row in rows]
