from __future__ import annotations

from typing import Any

from hyperscriber.errors import ProtocolError
from hyperscriber.types import FileState, RemoteFileHandle

_TERMINAL_STATES: dict[str, FileState] = {"ACTIVE": "ACTIVE", "FAILED": "FAILED"}


def normalize_state(value: object) -> FileState:
    # STATE_UNSPECIFIED and missing states are still being processed.
    return _TERMINAL_STATES.get(str(value or "").strip().upper(), "PROCESSING")


def parse_remote_file(payload: dict[str, Any]) -> RemoteFileHandle:
    """Build a handle from either ``{"file": {...}}`` or a bare file resource."""
    resource = payload.get("file", payload)
    if not isinstance(resource, dict):
        raise ProtocolError("File resource has an unexpected shape", detail=str(payload)[:400])

    uri = resource.get("uri")
    name = resource.get("name")
    if not uri or not name:
        raise ProtocolError("File resource is missing uri or name", detail=str(resource)[:400])

    mime_type = resource.get("mimeType") or resource.get("mime_type")
    return RemoteFileHandle(
        uri=str(uri),
        resource_name=str(name),
        state=normalize_state(resource.get("state")),
        mime_type=str(mime_type) if mime_type else None,
    )
