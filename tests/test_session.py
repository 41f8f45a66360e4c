import asyncio

import httpx
import pytest

from conftest import API_HOST, FakeGemini
from hyperscriber.errors import AuthError, NetworkError, ProtocolError
from hyperscriber.services.http import redact
from hyperscriber.services.session import SessionInitiator


async def _start(gemini: FakeGemini, credential: str = "secret"):
    async with gemini.client() as client:
        return await SessionInitiator(client, API_HOST).start(1024, "video/mp4", "lecture.mp4", credential)


def test_start_declares_size_and_type_as_metadata(gemini: FakeGemini) -> None:
    session = asyncio.run(_start(gemini))

    request = gemini.requests[0]
    assert request.headers["x-goog-upload-protocol"] == "resumable"
    assert request.headers["x-goog-upload-header-content-length"] == "1024"
    assert request.headers["x-goog-upload-header-content-type"] == "video/mp4"
    assert request.url.params["key"] == "secret"
    assert b"lecture.mp4" in request.read()

    assert session.total_size == 1024
    assert session.content_type == "video/mp4"
    assert session.display_name == "lecture.mp4"


def test_relative_session_url_is_made_absolute_with_key(gemini: FakeGemini) -> None:
    session = asyncio.run(_start(gemini))

    url = httpx.URL(session.target_url)
    assert str(url).startswith(f"{API_HOST}/upload/v1beta/files")
    assert url.params["upload_id"] == "sess-1"
    assert url.params["key"] == "secret"


def test_existing_key_in_session_url_is_kept(gemini: FakeGemini) -> None:
    gemini.session_url = f"{API_HOST}/upload/v1beta/files?upload_id=sess-2&key=other"
    session = asyncio.run(_start(gemini))

    assert httpx.URL(session.target_url).params.get_list("key") == ["other"]


def test_missing_session_url_is_a_protocol_error(gemini: FakeGemini) -> None:
    gemini.session_url = None
    with pytest.raises(ProtocolError, match="no session url"):
        asyncio.run(_start(gemini))
    assert gemini.chunks == []


@pytest.mark.parametrize("status,error", [(401, AuthError), (403, AuthError), (500, ProtocolError)])
def test_non_success_status_maps_to_error(gemini: FakeGemini, status: int, error: type) -> None:
    gemini.start_status = status
    with pytest.raises(error) as info:
        asyncio.run(_start(gemini))
    assert info.value.status_code == status


def test_transport_failure_is_a_network_error() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def run() -> None:
        async with httpx.AsyncClient(transport=httpx.MockTransport(refuse)) as client:
            await SessionInitiator(client, API_HOST).start(10, "audio/mpeg", "a.mp3", "secret")

    with pytest.raises(NetworkError):
        asyncio.run(run())


def test_redact_hides_only_the_key_parameter() -> None:
    url = f"{API_HOST}/upload/v1beta/files?upload_key=abc&key=secret&monkey=1"

    assert redact(url) == f"{API_HOST}/upload/v1beta/files?upload_key=abc&key=***&monkey=1"
    assert redact(f"{API_HOST}/v1beta/files/x?key=secret") == f"{API_HOST}/v1beta/files/x?key=***"
    assert redact(f"{API_HOST}/v1beta/files/x") == f"{API_HOST}/v1beta/files/x"
