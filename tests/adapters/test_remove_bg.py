"""Unit tests for RemoveBgClient and remove.bg error parsing."""

import json
from unittest.mock import patch

import pytest

from insta_sake.adapters.ai.remove_bg import (
    REMOVE_BG_URL,
    BackgroundRemovalError,
    RemoveBgClient,
    error_message,
)


@pytest.fixture
def photo(tmp_path):
    path = tmp_path / "bottle.jpg"
    path.write_bytes(b"fake-jpeg")
    return path


def _mock_session(status, body, calls):
    class FakeResponse:
        def __init__(self):
            self.status = status

        async def read(self):
            return body

        async def __aenter__(self):
            return self

        async def __aexit__(self, *args):
            pass

    class FakeSession:
        def __init__(self, *args, **kwargs):
            pass

        def post(self, url, **kwargs):
            calls.append((url, kwargs))
            return FakeResponse()

        async def __aenter__(self):
            return self

        async def __aexit__(self, *args):
            pass

    return FakeSession


class TestErrorMessage:
    def test_title_and_code(self):
        body = json.dumps({"errors": [{"title": "Insufficient credits", "code": "insufficient_credits"}]})
        assert error_message(body.encode()) == "Insufficient credits (insufficient_credits)"

    def test_code_only(self):
        assert error_message({"errors": [{"code": "unknown_foreground"}]}) == "Remove.bg error (unknown_foreground)"

    def test_title_only(self):
        assert error_message({"errors": [{"title": "Bad image"}]}) == "Bad image"

    def test_unparseable(self):
        assert error_message(b"<html>") == "Remove.bg request failed"

    def test_empty_errors(self):
        assert error_message({"errors": []}) == "Remove.bg request failed"


class TestRemoveBackground:
    @pytest.mark.asyncio
    async def test_not_configured(self, monkeypatch, photo):
        monkeypatch.setattr("insta_sake.adapters.ai.remove_bg.CONFIG", {"remove_bg_api_key": ""})
        client = RemoveBgClient()
        assert client.is_configured is False
        with pytest.raises(BackgroundRemovalError, match="Remove.bg API Key not configured"):
            await client.remove_background(str(photo))

    @pytest.mark.asyncio
    async def test_success(self, monkeypatch, photo):
        monkeypatch.setattr("insta_sake.adapters.ai.remove_bg.CONFIG", {"remove_bg_api_key": "rb-key"})
        calls = []
        with patch("insta_sake.adapters.ai.remove_bg.aiohttp.ClientSession",
                   _mock_session(200, b"PNGDATA", calls)):
            result = await RemoveBgClient().remove_background(str(photo))
        assert result == b"PNGDATA"
        url, kwargs = calls[0]
        assert url == REMOVE_BG_URL
        assert kwargs["headers"] == {"X-Api-Key": "rb-key"}

    @pytest.mark.asyncio
    async def test_api_error(self, monkeypatch, photo):
        monkeypatch.setattr("insta_sake.adapters.ai.remove_bg.CONFIG", {"remove_bg_api_key": "rb-key"})
        body = json.dumps({"errors": [{"title": "Insufficient credits", "code": "insufficient_credits"}]}).encode()
        with patch("insta_sake.adapters.ai.remove_bg.aiohttp.ClientSession",
                   _mock_session(402, body, [])):
            with pytest.raises(BackgroundRemovalError, match=r"Insufficient credits \(insufficient_credits\)"):
                await RemoveBgClient().remove_background(str(photo))
