import pytest

from hyperscriber.errors import UnsupportedMediaError
from hyperscriber.utils.media import default_complexity, media_kind, resolve_mime_type


def test_resolve_mime_type_prefers_explicit_value() -> None:
    assert resolve_mime_type("audio/webm", "talk.mp4") == "audio/webm"
    assert resolve_mime_type(None, "talk.mp4") == "video/mp4"
    assert resolve_mime_type(None, "blob") == "application/octet-stream"


def test_media_kind_and_default_complexity() -> None:
    assert media_kind("video/mp4") == "video"
    assert media_kind("audio/mpeg") == "audio"
    assert default_complexity("video") is True
    assert default_complexity("audio") is False


def test_non_media_is_rejected() -> None:
    with pytest.raises(UnsupportedMediaError):
        media_kind("application/pdf")
