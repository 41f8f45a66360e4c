from __future__ import annotations

import re
from typing import Any
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse

import httpx

from hyperscriber.errors import AuthError, NetworkError, ProtocolError

_KEY_PATTERN = re.compile(r"(?<=[?&])key=[^&]+")


def redact(url: str) -> str:
    return _KEY_PATTERN.sub("key=***", url)


def excerpt(response: httpx.Response, limit: int = 400) -> str:
    try:
        return response.text[:limit]
    except (UnicodeDecodeError, httpx.ResponseNotRead):
        return ""


def absolute_url(api_host: str, url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme and parsed.netloc:
        return url
    return urljoin(f"{api_host.rstrip('/')}/", url)


def with_api_key(url: str, api_key: str) -> str:
    parsed = urlparse(url)
    query_pairs = parse_qsl(parsed.query, keep_blank_values=True)
    if any(name == "key" for name, _ in query_pairs):
        return url
    query_pairs.append(("key", api_key))
    return urlunparse(parsed._replace(query=urlencode(query_pairs)))


async def send(client: httpx.AsyncClient, method: str, url: str, *, action: str, **kwargs: Any) -> httpx.Response:
    try:
        return await client.request(method, url, **kwargs)
    except httpx.TransportError as exc:
        raise NetworkError(f"{action} failed: {exc.__class__.__name__}: {exc}") from exc


def raise_for_status(response: httpx.Response, action: str) -> None:
    if response.is_success:
        return
    detail = excerpt(response)
    message = f"{action} failed ({response.status_code} {response.reason_phrase})"
    if response.status_code in (401, 403):
        raise AuthError(message, status_code=response.status_code, detail=detail)
    raise ProtocolError(message, status_code=response.status_code, detail=detail)


def json_body(response: httpx.Response, action: str) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise ProtocolError(f"{action} returned a non-JSON body", detail=excerpt(response)) from exc
    if not isinstance(payload, dict):
        raise ProtocolError(f"{action} returned an unexpected body", detail=excerpt(response))
    return payload
