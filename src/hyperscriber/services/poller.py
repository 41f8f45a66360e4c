from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

from hyperscriber.errors import ProcessingFailedError, TranscriptionCancelled
from hyperscriber.services.http import json_body, raise_for_status, send, with_api_key
from hyperscriber.services.remote_file import normalize_state
from hyperscriber.types import RemoteFileHandle, UploadTrace

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ReadinessPoller:
    def __init__(
        self,
        client: httpx.AsyncClient,
        api_host: str,
        api_key: str,
        sleep: Sleep = asyncio.sleep,
        trace: UploadTrace | None = None,
    ) -> None:
        self.client = client
        self.api_host = api_host.rstrip("/")
        self.api_key = api_key
        self._sleep = sleep
        self.trace = trace if trace is not None else UploadTrace()

    async def await_active(
        self,
        handle: RemoteFileHandle,
        poll_interval: float = 2.0,
        cancel: asyncio.Event | None = None,
    ) -> RemoteFileHandle:
        self.trace.handle = handle
        self.trace.stage = "processing"
        url = with_api_key(f"{self.api_host}/v1beta/{handle.resource_name}", self.api_key)

        polls = 0
        while handle.state == "PROCESSING":
            await self._sleep(poll_interval)
            if cancel is not None and cancel.is_set():
                raise TranscriptionCancelled(self.trace)

            response = await send(self.client, "GET", url, action=f"Readiness check for {handle.resource_name}")
            raise_for_status(response, f"Readiness check for {handle.resource_name}")
            payload = json_body(response, f"Readiness check for {handle.resource_name}")
            handle.state = normalize_state(payload.get("state"))
            polls += 1
            logger.debug("Poll %d for %s: %s", polls, handle.resource_name, handle.state)

        if handle.state == "FAILED":
            raise ProcessingFailedError(f"File processing failed on the server for {handle.resource_name}")

        logger.info("File %s is ACTIVE after %d poll(s)", handle.resource_name, polls)
        return handle
