"""remove.bg adapter: cuts the product out of its photo."""

import json
from pathlib import Path
from typing import Any, Optional

import aiohttp

from insta_sake.config import CONFIG

REMOVE_BG_URL = "https://api.remove.bg/v1.0/removebg"


class BackgroundRemovalError(Exception):
    """Raised when remove.bg is not configured or rejects the image."""


def error_message(body: Any, default: str = "Remove.bg request failed") -> str:
    """Turn a remove.bg error body into ``<title> (<code>)``."""
    if isinstance(body, (bytes, bytearray)):
        try:
            body = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            return default
    if not isinstance(body, dict):
        return default
    errors = body.get("errors") or []
    first = errors[0] if errors and isinstance(errors[0], dict) else {}
    title = first.get("title")
    code = first.get("code")
    if not title and not code:
        return default
    message = title or "Remove.bg error"
    return f"{message} ({code})" if code else message


class RemoveBgClient:
    """Async remove.bg client returning the cut-out as PNG bytes."""

    def __init__(self, timeout: float = 60.0):
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def is_configured(self) -> bool:
        return bool(CONFIG["remove_bg_api_key"])

    async def remove_background(self, path: str) -> bytes:
        api_key: Optional[str] = CONFIG["remove_bg_api_key"]
        if not api_key:
            raise BackgroundRemovalError("Remove.bg API Key not configured")

        image_path = Path(path)
        form = aiohttp.FormData()
        form.add_field("image_file", image_path.read_bytes(), filename=image_path.name)
        form.add_field("size", "auto")

        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.post(
                    REMOVE_BG_URL, data=form, headers={"X-Api-Key": api_key}
                ) as resp:
                    body = await resp.read()
                    if resp.status >= 400:
                        raise BackgroundRemovalError(error_message(body))
                    return body
        except aiohttp.ClientError as e:
            raise BackgroundRemovalError(str(e) or "Remove.bg request failed") from e
