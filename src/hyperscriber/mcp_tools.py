from __future__ import annotations

from pathlib import Path
from typing import Any

from fastmcp import FastMCP
from mcp.types import ToolAnnotations

from hyperscriber.db.jobs import JobsRepository
from hyperscriber.db.transcripts import TranscriptsRepository
from hyperscriber.errors import UnsupportedMediaError
from hyperscriber.utils.media import default_complexity, media_kind, resolve_mime_type


class ToolRegistry:
    def __init__(self, jobs: JobsRepository, transcripts: TranscriptsRepository) -> None:
        self.jobs = jobs
        self.transcripts = transcripts

    def register(self, mcp: FastMCP) -> None:
        _ro = ToolAnnotations(readOnlyHint=True)

        @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, idempotentHint=True))
        def transcribe(path: str, mime_type: str | None = None, complex: bool | None = None) -> dict[str, Any]:
            """Queue a local video or audio file for transcription.

            Args:
                path: Path of the media file on the server
                mime_type: Explicit mime type; guessed from the file name when omitted
                complex: Use the deep model with extended reasoning. Defaults to true for video.

            Returns:
                Job status with job_id for tracking.
            """
            file_path = Path(path).expanduser().resolve()
            if not file_path.is_file():
                return {"error": "file_not_found", "path": str(file_path)}

            resolved_mime = resolve_mime_type(mime_type, file_path)
            try:
                kind = media_kind(resolved_mime)
            except UnsupportedMediaError as exc:
                return {"error": "unsupported_media", "message": str(exc), "mime_type": resolved_mime}

            active = self.jobs.find_active_by_file_path(str(file_path))
            if active is not None:
                return {
                    "job_id": active["id"],
                    "status": active["status"],
                    "progress": active["progress"],
                    "deduplicated": True,
                }

            job = self.jobs.enqueue(
                file_path=str(file_path),
                mime_type=resolved_mime,
                media_kind=kind,
                complex=default_complexity(kind) if complex is None else complex,
            )
            return {
                "job_id": job["id"],
                "status": job["status"],
                "complex": bool(job["complex"]),
                "deduplicated": False,
            }

        @mcp.tool(annotations=_ro)
        def job_status(job_id: str) -> dict[str, Any]:
            job = self.jobs.get(job_id)
            if job is None:
                return {"error": "job_not_found", "job_id": job_id}
            return job

        @mcp.tool(annotations=_ro)
        def search(query: str, limit: int = 10) -> dict[str, Any]:
            return {
                "query": query,
                "results": self.transcripts.search(query=query, limit=limit),
            }

        @mcp.tool(annotations=_ro)
        def list_transcripts(kind: str | None = None, limit: int = 20) -> dict[str, Any]:
            items = self.transcripts.list_transcripts(media_kind=kind, limit=limit)
            return {
                "count": len(items),
                "items": items,
            }

        @mcp.tool(annotations=_ro)
        def read_transcript(
            job_id: str,
            format: str = "markdown",
            offset: int = 0,
            limit: int | None = None,
        ) -> dict[str, Any]:
            """Read a finished transcript.

            Args:
                job_id: The job ID returned from transcribe()
                format: Output format - "markdown" or "text" (default: "markdown")
                offset: Number of lines to skip (default: 0)
                limit: Max lines to return. None returns all remaining.

            Returns:
                Transcript content with pagination info (total, offset, count).
            """
            transcript = self.transcripts.get_by_job_id(job_id)
            if transcript is None:
                return {"error": "transcript_not_found", "job_id": job_id}

            if format not in ("markdown", "text"):
                return {
                    "error": "unsupported_format",
                    "supported_formats": ["markdown", "text"],
                }

            ext = "md" if format == "markdown" else "txt"
            file_path = Path(str(transcript["path"])) / f"transcript.{ext}"
            full = file_path.read_text(encoding="utf-8") if file_path.exists() else ""
            lines = full.splitlines(keepends=True)
            page = lines[offset:] if limit is None else lines[offset:offset + limit]
            return {
                "job_id": job_id,
                "format": format,
                "content": "".join(page),
                "total_lines": len(lines),
                "offset": offset,
                "lines_returned": len(page),
                "metadata": transcript,
            }
