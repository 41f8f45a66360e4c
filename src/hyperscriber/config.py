from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_API_HOST = "https://generativelanguage.googleapis.com"
DEFAULT_DEEP_MODEL = "gemini-2.5-pro"
DEFAULT_FAST_MODEL = "gemini-2.5-flash"
DEFAULT_CHUNK_SIZE = 8 * 1024 * 1024
DEFAULT_THINKING_BUDGET = 32768


@dataclass(slots=True)
class Settings:
    host: str
    port: int
    mcp_path: str
    health_path: str
    poll_interval_seconds: int
    data_dir: Path
    database_path: Path
    gemini_api_key: str | None
    api_host: str
    deep_model: str
    fast_model: str
    thinking_budget: int
    chunk_size: int
    upload_protocol: str
    readiness_poll_seconds: float
    http_timeout_seconds: float


def _as_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    return int(raw)


def _as_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    return float(raw)


def _normalized_path(path: str) -> str:
    if not path.startswith("/"):
        path = f"/{path}"
    return path


def load_settings() -> Settings:
    load_dotenv()
    data_dir = Path(os.getenv("DATA_DIR", "/data")).resolve()
    database_path = Path(os.getenv("DATABASE_PATH", str(data_dir / "hyperscriber.sqlite3"))).resolve()

    # The key may be absent here; the dispatcher refuses to run without one.
    api_key = (os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or "").strip()

    chunk_size = _as_int("UPLOAD_CHUNK_SIZE", DEFAULT_CHUNK_SIZE)
    if chunk_size <= 0:
        raise RuntimeError("UPLOAD_CHUNK_SIZE must be positive")

    return Settings(
        host=os.getenv("HOST", "0.0.0.0"),
        port=_as_int("PORT", 3000),
        mcp_path=_normalized_path(os.getenv("MCP_PATH", "/mcp")),
        health_path=_normalized_path(os.getenv("HEALTH_PATH", "/healthz")),
        poll_interval_seconds=_as_int("POLL_INTERVAL_SECONDS", 5),
        data_dir=data_dir,
        database_path=database_path,
        gemini_api_key=api_key or None,
        api_host=os.getenv("GEMINI_API_HOST", DEFAULT_API_HOST).rstrip("/"),
        deep_model=os.getenv("GEMINI_DEEP_MODEL", DEFAULT_DEEP_MODEL),
        fast_model=os.getenv("GEMINI_FAST_MODEL", DEFAULT_FAST_MODEL),
        thinking_budget=_as_int("GEMINI_THINKING_BUDGET", DEFAULT_THINKING_BUDGET),
        chunk_size=chunk_size,
        upload_protocol=os.getenv("UPLOAD_PROTOCOL", "command").strip().lower(),
        readiness_poll_seconds=_as_float("READINESS_POLL_SECONDS", 2.0),
        http_timeout_seconds=_as_float("HTTP_TIMEOUT_SECONDS", 600.0),
    )
