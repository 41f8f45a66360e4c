from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest

API_HOST = "https://gemini.test"
FILE_NAME = "files/abc123"
FILE_URI = f"{API_HOST}/v1beta/{FILE_NAME}"


@dataclass
class ChunkCall:
    offset: int
    length: int
    method: str
    headers: dict[str, str]


@dataclass
class FakeGemini:
    """In-memory stand-in for the Gemini files and generation endpoints."""

    protocol: str = "command"
    session_url: str | None = "/upload/v1beta/files?upload_id=sess-1&upload_protocol=resumable"
    start_status: int = 200
    chunk_status: dict[int, int] = field(default_factory=dict)
    chunk_disconnects: set[int] = field(default_factory=set)
    final_state: str = "PROCESSING"
    poll_states: list[str] = field(default_factory=lambda: ["ACTIVE"])
    poll_status: int = 200
    poll_disconnect: bool = False
    generation_text: str = "The energy is $E=mc^2$."
    generation_status: int = 200
    total_size: int = 0
    requests: list[httpx.Request] = field(default_factory=list)
    chunks: list[ChunkCall] = field(default_factory=list)
    polls: int = 0
    generation_bodies: list[dict[str, Any]] = field(default_factory=list)
    generation_urls: list[str] = field(default_factory=list)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/upload/v1beta/files" and request.headers.get("x-goog-upload-command") == "start":
            return self._start(request)
        if path == "/upload/v1beta/files":
            return self._chunk(request)
        if request.method == "GET" and path == f"/v1beta/{FILE_NAME}":
            return self._poll(request)
        if path.endswith(":generateContent"):
            return self._generate(request)
        return httpx.Response(404, text="not found")

    def _start(self, request: httpx.Request) -> httpx.Response:
        self.total_size = int(request.headers["x-goog-upload-header-content-length"])
        if self.start_status != 200:
            return httpx.Response(self.start_status, text="start rejected")
        headers = {"x-goog-upload-url": self.session_url} if self.session_url else {}
        return httpx.Response(200, headers=headers, json={})

    def _chunk(self, request: httpx.Request) -> httpx.Response:
        body = request.read()
        if self.protocol == "command":
            offset = int(request.headers["x-goog-upload-offset"])
            is_final = "finalize" in request.headers["x-goog-upload-command"]
        else:
            match = re.match(r"bytes (\d+)-(\d+)/(\d+)", request.headers["content-range"])
            assert match is not None
            offset = int(match.group(1))
            is_final = int(match.group(2)) + 1 == int(match.group(3))

        index = len(self.chunks)
        self.chunks.append(ChunkCall(offset, len(body), request.method, dict(request.headers)))
        if index in self.chunk_disconnects:
            raise httpx.ConnectError("connection reset by peer", request=request)
        if index in self.chunk_status:
            return httpx.Response(self.chunk_status[index], text="chunk rejected")

        if not is_final:
            if self.protocol == "command":
                return httpx.Response(200, headers={"x-goog-upload-status": "active"})
            return httpx.Response(308)

        resource = {
            "file": {
                "name": FILE_NAME,
                "uri": FILE_URI,
                "mimeType": request.headers.get("content-type"),
                "state": self.final_state,
            }
        }
        return httpx.Response(200, headers={"x-goog-upload-status": "final"}, json=resource)

    def _poll(self, request: httpx.Request) -> httpx.Response:
        self.polls += 1
        if self.poll_disconnect:
            raise httpx.ConnectError("connection reset by peer", request=request)
        if self.poll_status != 200:
            return httpx.Response(self.poll_status, text="poll rejected")
        state = self.poll_states.pop(0) if len(self.poll_states) > 1 else self.poll_states[0]
        return httpx.Response(200, json={"name": FILE_NAME, "uri": FILE_URI, "state": state})

    def _generate(self, request: httpx.Request) -> httpx.Response:
        self.generation_urls.append(str(request.url))
        self.generation_bodies.append(json.loads(request.read()))
        if self.generation_status != 200:
            return httpx.Response(self.generation_status, text="model overloaded")
        parts = [{"text": self.generation_text}] if self.generation_text else []
        return httpx.Response(
            200,
            json={"candidates": [{"content": {"role": "model", "parts": parts}}]},
        )


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def gemini() -> FakeGemini:
    return FakeGemini()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()
