"""OpenAI adapter: bottle recognition (gpt-4o vision) and background generation (DALL-E 3)."""

import base64
import json
import sys
from typing import Dict, Optional

from openai import AsyncOpenAI, OpenAIError

from insta_sake.config import CONFIG

VISION_MODEL = "gpt-4o"
IMAGE_MODEL = "dall-e-3"

ANALYZE_PROMPT = (
    "この写真に写っている日本酒の銘柄を特定してください（銘柄名は日本語で返してください）。"
    "また、その日本酒のイメージに合う背景（例：雪景色、桜、伝統的な和室など）を英語のプロンプトとして提案してください。"
    "JSON形式で { \"brand\": \"...\", \"background_prompt\": \"...\" } という形で返してください。"
)

BACKGROUND_PROMPT = (
    "A high quality, photorealistic background for a sake bottle product shot. "
    "{prompt}. No text, no bottles, just the background scenery."
)


def _log(msg: str):
    print(msg, file=sys.stderr)


class VisionError(Exception):
    """Raised when an OpenAI call fails or returns something unusable."""


class OpenAIVision:
    """Wraps AsyncOpenAI; the client follows key changes made through /api/config."""

    def __init__(self):
        self._client: Optional[AsyncOpenAI] = None
        self._client_key = ""

    @property
    def is_configured(self) -> bool:
        return bool(CONFIG["openai_api_key"])

    def _get_client(self) -> AsyncOpenAI:
        key = CONFIG["openai_api_key"]
        if not key:
            raise VisionError("OpenAI API Key not configured")
        if self._client is None or key != self._client_key:
            self._client = AsyncOpenAI(api_key=key)
            self._client_key = key
        return self._client

    @staticmethod
    def data_url(image: bytes, mime: str = "image/jpeg") -> str:
        encoded = base64.b64encode(image).decode("ascii")
        return f"data:{mime};base64,{encoded}"

    async def analyze_bottle(self, image: bytes, mime: str = "image/jpeg") -> Dict[str, str]:
        """Identify the sake brand and suggest an English background prompt."""
        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=VISION_MODEL,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": ANALYZE_PROMPT},
                            {"type": "image_url", "image_url": {"url": self.data_url(image, mime)}},
                        ],
                    }
                ],
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            raise VisionError(str(e)) from e

        content = response.choices[0].message.content or ""
        try:
            result = json.loads(content)
        except ValueError as e:
            raise VisionError(f"Model returned invalid JSON: {content[:200]}") from e
        if not isinstance(result, dict):
            raise VisionError(f"Model returned unexpected JSON: {content[:200]}")
        return result

    async def generate_background(self, prompt: str) -> bytes:
        """Generate a 1024x1024 background scene; returns PNG bytes."""
        client = self._get_client()
        _log(f"[OpenAI] Generating background with prompt: {prompt}")
        try:
            response = await client.images.generate(
                model=IMAGE_MODEL,
                prompt=BACKGROUND_PROMPT.format(prompt=prompt),
                n=1,
                size="1024x1024",
                response_format="b64_json",
            )
        except OpenAIError as e:
            raise VisionError(str(e)) from e

        b64 = response.data[0].b64_json if response.data else None
        if not b64:
            raise VisionError("Image generation returned no data")
        return base64.b64decode(b64)
