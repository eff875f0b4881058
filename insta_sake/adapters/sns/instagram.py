"""Instagram client using Meta Graph API (aiohttp-based)."""

import asyncio
import sys
from typing import Any, Dict, Optional

import aiohttp

from insta_sake.config import CONFIG, public_base_url
from insta_sake.ports.outbound import PublishResult

INSTAGRAM_API_BASE = "https://graph.facebook.com/v19.0"
CAPTION_LIMIT = 2200


def _log(msg: str):
    print(msg, file=sys.stderr)


class RateLimitError(Exception):
    """Raised when Instagram API returns 429."""


class InstagramPublishError(Exception):
    """Raised for any non-retryable failure in the publish sequence."""


class InstagramClient:
    """Async Instagram Graph API client.

    Publishing is three steps: create a media container from a public image
    URL, poll the container until Instagram has fetched and processed the
    image, then publish the container.
    """

    def __init__(
        self,
        poll_attempts: int = 10,
        poll_delay: float = 2.0,
        max_retries: int = 3,
        timeout: float = 30.0,
    ):
        self.poll_attempts = poll_attempts
        self.poll_delay = poll_delay
        self.max_retries = max_retries
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def is_configured(self) -> bool:
        return bool(CONFIG["instagram_user_id"] and CONFIG["access_token"])

    @staticmethod
    def truncate_text(text: str, limit: int = CAPTION_LIMIT) -> str:
        """Instagram caption limit is ~2200 characters."""
        if len(text) <= limit:
            return text
        return text[: limit - 3] + "..."

    @staticmethod
    def resolve_image_url(image_path: str, base_url: str) -> str:
        """Hosted images are used as-is; local uploads are served under base_url."""
        if image_path.startswith("https://"):
            return image_path
        if not base_url:
            raise InstagramPublishError("PUBLIC_URL/BASE_URL is missing")
        path = image_path.replace("\\", "/").lstrip("/")
        return f"{base_url.rstrip('/')}/{path}"

    @staticmethod
    def check_image_url(image_url: str) -> None:
        """Static checks Instagram would otherwise fail on with an opaque error."""
        if not image_url or not isinstance(image_url, str):
            raise InstagramPublishError("Image URL is missing")
        if not image_url.startswith("https://"):
            raise InstagramPublishError("Public URL must be https and publicly accessible")
        if "localhost" in image_url or "127.0.0.1" in image_url:
            raise InstagramPublishError("Image URL is not publicly accessible (localhost)")

    async def ensure_image_url_is_valid(self, session: aiohttp.ClientSession, image_url: str) -> None:
        """Fetch the image the way Instagram will and check it is really an image."""
        self.check_image_url(image_url)
        async with session.get(image_url) as resp:
            if not 200 <= resp.status < 400:
                raise InstagramPublishError(
                    f"Image URL is not reachable (HTTP {resp.status})"
                )
            content_type = resp.headers.get("Content-Type", "") or ""
            if not content_type.startswith("image/"):
                raise InstagramPublishError(
                    f"Image URL is not an image (content-type: {content_type or 'unknown'})"
                )

    @staticmethod
    async def _read_graph_response(resp) -> Dict[str, Any]:
        if resp.status == 429:
            raise RateLimitError("Instagram API rate limited (429)")
        try:
            data = await resp.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError):
            data = None
        if resp.status >= 400 or not isinstance(data, dict):
            message = None
            if isinstance(data, dict):
                message = (data.get("error") or {}).get("message")
            if message is None:
                message = await resp.text()
            raise InstagramPublishError(f"Instagram API failed (HTTP {resp.status}): {message}")
        if "error" in data:
            raise InstagramPublishError(data["error"].get("message", str(data)))
        return data

    async def _create_container(self, session: aiohttp.ClientSession, caption: str, image_url: str) -> str:
        """Create a media container for an image post."""
        user_id = CONFIG["instagram_user_id"]
        url = f"{INSTAGRAM_API_BASE}/{user_id}/media"
        params = {
            "image_url": image_url,
            "caption": caption,
            "access_token": CONFIG["access_token"],
        }
        async with session.post(url, params=params) as resp:
            data = await self._read_graph_response(resp)
        if "id" not in data:
            raise InstagramPublishError(f"Container response without id: {data}")
        return data["id"]

    async def _wait_until_ready(self, session: aiohttp.ClientSession, container_id: str) -> Optional[str]:
        """Poll the container status; returns the last status seen."""
        url = f"{INSTAGRAM_API_BASE}/{container_id}"
        params = {"fields": "status_code", "access_token": CONFIG["access_token"]}
        status = None
        for attempt in range(1, self.poll_attempts + 1):
            async with session.get(url, params=params) as resp:
                data = await self._read_graph_response(resp)
            status = data.get("status_code")
            if status == "FINISHED":
                return status
            if status == "ERROR":
                raise InstagramPublishError("Media processing failed")
            if attempt < self.poll_attempts:
                await asyncio.sleep(self.poll_delay)
        _log(f"[Instagram] container {container_id} still {status!r} after {self.poll_attempts} checks, publishing anyway")
        return status

    async def _publish(self, session: aiohttp.ClientSession, container_id: str) -> str:
        """Publish a media container."""
        user_id = CONFIG["instagram_user_id"]
        url = f"{INSTAGRAM_API_BASE}/{user_id}/media_publish"
        params = {
            "creation_id": container_id,
            "access_token": CONFIG["access_token"],
        }
        async with session.post(url, params=params) as resp:
            data = await self._read_graph_response(resp)
        if "id" not in data:
            raise InstagramPublishError(f"Publish response without id: {data}")
        return data["id"]

    async def _publish_once(self, image_url: str, caption: str) -> str:
        async with aiohttp.ClientSession(timeout=self._timeout) as session:
            await self.ensure_image_url_is_valid(session, image_url)
            _log(f"[Instagram] Creating media container for: {image_url}")
            container_id = await self._create_container(session, caption, image_url)
            _log(f"[Instagram] Container created: {container_id}. Waiting for processing...")
            await self._wait_until_ready(session, container_id)
            media_id = await self._publish(session, container_id)
            _log(f"[Instagram] Success! Post ID: {media_id}")
            return media_id

    async def publish(self, image_path: str, caption: str) -> PublishResult:
        """Publish an image with caption (exponential backoff on 429).

        Args:
            image_path: Hosted https URL, or a path relative to the public base URL.
            caption: Caption text.
        """
        if not CONFIG["access_token"]:
            return PublishResult(success=False, error="ACCESS_TOKEN is missing")
        if not CONFIG["instagram_user_id"]:
            return PublishResult(success=False, error="INSTAGRAM_USER_ID is missing")

        try:
            image_url = self.resolve_image_url(image_path or "", public_base_url())
        except InstagramPublishError as e:
            return PublishResult(success=False, error=str(e))

        caption = self.truncate_text(caption or "")
        for attempt in range(self.max_retries):
            try:
                media_id = await self._publish_once(image_url, caption)
                return PublishResult(success=True, media_id=media_id, image_url=image_url)
            except RateLimitError:
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(2 ** attempt)
                    continue
                return PublishResult(success=False, image_url=image_url, error="Rate limited (429)")
            except InstagramPublishError as e:
                _log(f"[Instagram] Error posting: {e}")
                return PublishResult(success=False, image_url=image_url, error=str(e))
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                _log(f"[Instagram] Error posting: {e!r}")
                return PublishResult(success=False, image_url=image_url, error=str(e) or type(e).__name__)

        return PublishResult(success=False, image_url=image_url, error="Max retries exceeded")
