from __future__ import annotations

import sqlite3
from pathlib import Path
from threading import Lock


class Database:
    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._initialize()

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn

    @property
    def lock(self) -> Lock:
        return self._lock

    def _initialize(self) -> None:
        with self._lock:
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
            self._conn.execute("PRAGMA foreign_keys=ON")

            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS jobs (
                  id TEXT PRIMARY KEY,
                  file_path TEXT NOT NULL,
                  mime_type TEXT NOT NULL,
                  media_kind TEXT NOT NULL,
                  complex INTEGER NOT NULL DEFAULT 0,
                  status TEXT NOT NULL DEFAULT 'queued',
                  progress INTEGER NOT NULL DEFAULT 0,
                  created_at TEXT NOT NULL DEFAULT (datetime('now')),
                  started_at TEXT,
                  completed_at TEXT,
                  error TEXT,
                  remote_name TEXT,
                  remote_uri TEXT,
                  remote_session TEXT,
                  model TEXT,
                  result_path TEXT
                );

                CREATE INDEX IF NOT EXISTS idx_jobs_status_created_at
                ON jobs(status, created_at);

                CREATE INDEX IF NOT EXISTS idx_jobs_file_path_status
                ON jobs(file_path, status);

                CREATE TABLE IF NOT EXISTS transcripts (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  job_id TEXT UNIQUE NOT NULL,
                  file_name TEXT NOT NULL,
                  file_path TEXT NOT NULL,
                  mime_type TEXT NOT NULL,
                  media_kind TEXT NOT NULL,
                  size_bytes INTEGER,
                  model TEXT NOT NULL,
                  remote_uri TEXT,
                  word_count INTEGER,
                  transcribed_at TEXT NOT NULL DEFAULT (datetime('now')),
                  path TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_transcripts_kind
                ON transcripts(media_kind, transcribed_at DESC);

                CREATE VIRTUAL TABLE IF NOT EXISTS transcripts_fts USING fts5(
                  job_id UNINDEXED,
                  file_name,
                  transcript_text
                );
                """
            )
            self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()
