from __future__ import annotations

import re
from pathlib import Path


def _sanitize_path_component(value: str, fallback: str) -> str:
    clean = re.sub(r"[^a-zA-Z0-9._-]+", "_", value.strip())
    clean = clean.strip("._")
    return clean or fallback


def _format_size(size_bytes: int | None) -> str | None:
    if size_bytes is None:
        return None
    value = float(max(size_bytes, 0))
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return None


def to_markdown(text: str, metadata: dict[str, object] | None = None) -> str:
    lines: list[str] = []
    metadata = metadata or {}

    file_name = metadata.get("file_name")
    if file_name:
        lines.append(f"# {file_name}")
        lines.append("")

    meta_lines: list[str] = []
    mime_type = metadata.get("mime_type")
    if mime_type:
        meta_lines.append(f"**Type**: {mime_type}")

    size_bytes = metadata.get("size_bytes")
    size = _format_size(size_bytes) if isinstance(size_bytes, int) else None
    if size:
        meta_lines.append(f"**Size**: {size}")

    model = metadata.get("model")
    if model:
        meta_lines.append(f"**Model**: {model}")

    if meta_lines:
        lines.extend(meta_lines)
        lines.append("")
        lines.append("---")
        lines.append("")

    lines.append("## Transcript")
    lines.append("")
    # LaTeX stays verbatim; markdown renderers handle $...$ and $$...$$.
    lines.append(text.strip())

    return "\n".join(lines).strip() + "\n"


class StorageService:
    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir
        self.transcripts_root = data_dir / "transcripts"
        self.transcripts_root.mkdir(parents=True, exist_ok=True)

    def persist(
        self,
        *,
        job_id: str,
        file_name: str,
        mime_type: str,
        size_bytes: int | None,
        model: str,
        text: str,
    ) -> dict[str, str]:
        stem = _sanitize_path_component(Path(file_name).stem, "upload")
        job_dir = self.transcripts_root / f"{stem}-{_sanitize_path_component(job_id, 'job')[:8]}"
        job_dir.mkdir(parents=True, exist_ok=True)

        transcript_md_path = job_dir / "transcript.md"
        transcript_txt_path = job_dir / "transcript.txt"

        markdown = to_markdown(
            text,
            metadata={
                "file_name": file_name,
                "mime_type": mime_type,
                "size_bytes": size_bytes,
                "model": model,
            },
        )
        transcript_md_path.write_text(markdown, encoding="utf-8")
        transcript_txt_path.write_text(text.strip() + "\n", encoding="utf-8")

        return {
            "path": str(job_dir),
            "transcript_md_path": str(transcript_md_path),
            "transcript_txt_path": str(transcript_txt_path),
        }
