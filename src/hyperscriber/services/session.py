from __future__ import annotations

import logging

import httpx

from hyperscriber.errors import ProtocolError
from hyperscriber.services.http import absolute_url, json_body, raise_for_status, redact, send, with_api_key
from hyperscriber.types import UploadSession

logger = logging.getLogger(__name__)

UPLOAD_PATH = "/upload/v1beta/files"


class SessionInitiator:
    def __init__(self, client: httpx.AsyncClient, api_host: str) -> None:
        self.client = client
        self.api_host = api_host.rstrip("/")

    async def start(
        self,
        total_size: int,
        content_type: str,
        display_name: str,
        credential: str,
    ) -> UploadSession:
        start_url = with_api_key(f"{self.api_host}{UPLOAD_PATH}", credential)
        headers = {
            "X-Goog-Upload-Protocol": "resumable",
            "X-Goog-Upload-Command": "start",
            "X-Goog-Upload-Header-Content-Length": str(total_size),
            "X-Goog-Upload-Header-Content-Type": content_type,
            "Content-Type": "application/json",
        }
        response = await send(
            self.client,
            "POST",
            start_url,
            action="Upload session start",
            headers=headers,
            json={"file": {"display_name": display_name}},
        )
        raise_for_status(response, "Upload session start")

        target_url = response.headers.get("x-goog-upload-url") or self._url_from_body(response)
        if not target_url:
            raise ProtocolError("no session url")

        target_url = with_api_key(absolute_url(self.api_host, target_url), credential)
        logger.info("Opened upload session for %s (%d bytes): %s", display_name, total_size, redact(target_url))
        return UploadSession(
            target_url=target_url,
            content_type=content_type,
            total_size=total_size,
            display_name=display_name,
        )

    @staticmethod
    def _url_from_body(response: httpx.Response) -> str | None:
        if not response.content:
            return None
        try:
            payload = json_body(response, "Upload session start")
        except ProtocolError:
            return None
        value = payload.get("uploadUrl") or payload.get("upload_url")
        return str(value) if value else None
