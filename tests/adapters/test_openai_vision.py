"""Unit tests for the OpenAI vision / image generation adapter."""

import base64
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from insta_sake.adapters.ai.openai_vision import (
    IMAGE_MODEL,
    VISION_MODEL,
    OpenAIVision,
    VisionError,
)


@pytest.fixture
def openai_key(monkeypatch):
    config = {"openai_api_key": "sk-test"}
    monkeypatch.setattr("insta_sake.adapters.ai.openai_vision.CONFIG", config)
    return config


def _chat_response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _fake_client(chat_content=None, image_b64=None):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_chat_response(chat_content))
    client.images.generate = AsyncMock(
        return_value=SimpleNamespace(data=[SimpleNamespace(b64_json=image_b64)])
    )
    return client


class TestConfiguration:
    def test_unconfigured(self, monkeypatch):
        monkeypatch.setattr("insta_sake.adapters.ai.openai_vision.CONFIG", {"openai_api_key": ""})
        assert OpenAIVision().is_configured is False

    @pytest.mark.asyncio
    async def test_call_without_key(self, monkeypatch):
        monkeypatch.setattr("insta_sake.adapters.ai.openai_vision.CONFIG", {"openai_api_key": ""})
        with pytest.raises(VisionError, match="OpenAI API Key not configured"):
            await OpenAIVision().generate_background("snow")

    @pytest.mark.asyncio
    async def test_client_rebuilt_when_key_changes(self, openai_key):
        with patch("insta_sake.adapters.ai.openai_vision.AsyncOpenAI") as factory:
            factory.return_value = _fake_client(image_b64=base64.b64encode(b"img").decode())
            vision = OpenAIVision()
            await vision.generate_background("snow")
            await vision.generate_background("snow")
            assert factory.call_count == 1
            openai_key["openai_api_key"] = "sk-rotated"
            await vision.generate_background("snow")
            assert factory.call_count == 2
            factory.assert_called_with(api_key="sk-rotated")


class TestAnalyzeBottle:
    @pytest.mark.asyncio
    async def test_returns_parsed_json(self, openai_key):
        payload = {"brand": "獺祭", "background_prompt": "snowy mountain temple"}
        client = _fake_client(chat_content=json.dumps(payload, ensure_ascii=False))
        with patch("insta_sake.adapters.ai.openai_vision.AsyncOpenAI", return_value=client):
            result = await OpenAIVision().analyze_bottle(b"\xff\xd8jpeg", "image/jpeg")
        assert result == payload
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == VISION_MODEL
        assert kwargs["response_format"] == {"type": "json_object"}
        image_part = kwargs["messages"][0]["content"][1]
        assert image_part["image_url"]["url"].startswith("data:image/jpeg;base64,")

    @pytest.mark.asyncio
    async def test_invalid_json(self, openai_key):
        client = _fake_client(chat_content="sorry, I cannot")
        with patch("insta_sake.adapters.ai.openai_vision.AsyncOpenAI", return_value=client):
            with pytest.raises(VisionError, match="invalid JSON"):
                await OpenAIVision().analyze_bottle(b"x")


class TestGenerateBackground:
    @pytest.mark.asyncio
    async def test_decodes_image(self, openai_key):
        client = _fake_client(image_b64=base64.b64encode(b"PNGBYTES").decode())
        with patch("insta_sake.adapters.ai.openai_vision.AsyncOpenAI", return_value=client):
            data = await OpenAIVision().generate_background("cherry blossoms")
        assert data == b"PNGBYTES"
        kwargs = client.images.generate.await_args.kwargs
        assert kwargs["model"] == IMAGE_MODEL
        assert kwargs["size"] == "1024x1024"
        assert kwargs["response_format"] == "b64_json"
        assert "cherry blossoms." in kwargs["prompt"]
        assert kwargs["prompt"].endswith("No text, no bottles, just the background scenery.")

    @pytest.mark.asyncio
    async def test_empty_response(self, openai_key):
        client = _fake_client(image_b64=None)
        with patch("insta_sake.adapters.ai.openai_vision.AsyncOpenAI", return_value=client):
            with pytest.raises(VisionError, match="no data"):
                await OpenAIVision().generate_background("x")
