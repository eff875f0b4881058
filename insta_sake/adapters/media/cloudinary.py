"""Cloudinary adapter: signed image upload over the REST API."""

import asyncio
import hashlib
import sys
import time
from pathlib import Path
from typing import Dict, Optional

import aiohttp

from insta_sake.config import CloudinaryConfig

CLOUDINARY_API_BASE = "https://api.cloudinary.com/v1_1"


def _log(msg: str):
    print(msg, file=sys.stderr)


class ImageHostError(Exception):
    """Raised when the upload is rejected or the host is unreachable."""


def sign_params(params: Dict[str, str], api_secret: str) -> str:
    """Cloudinary signature: SHA-1 of ``k=v&k=v`` (sorted keys) followed by the secret."""
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] not in (None, ""))
    return hashlib.sha1((to_sign + api_secret).encode("utf-8")).hexdigest()


class CloudinaryUploader:
    """Pushes local uploads to Cloudinary so Instagram can fetch them over https."""

    def __init__(self, config: CloudinaryConfig, timeout: float = 120.0):
        self._config = config
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def is_configured(self) -> bool:
        return self._config.is_configured

    async def upload(self, path: str, folder: Optional[str] = None) -> str:
        """Upload an image and return its ``secure_url``."""
        if not self.is_configured:
            raise ImageHostError("Cloudinary not configured")

        file_path = Path(path)
        params = {
            "folder": folder or self._config.folder,
            "timestamp": str(int(time.time())),
        }
        form = aiohttp.FormData()
        for key, value in params.items():
            form.add_field(key, value)
        form.add_field("api_key", self._config.api_key)
        form.add_field("signature", sign_params(params, self._config.api_secret))
        endpoint = f"{CLOUDINARY_API_BASE}/{self._config.cloud_name}/image/upload"
        try:
            form.add_field("file", file_path.read_bytes(), filename=file_path.name)
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.post(endpoint, data=form) as resp:
                    data = await resp.json(content_type=None)
                    if not isinstance(data, dict):
                        raise ImageHostError(
                            f"Cloudinary upload failed (HTTP {resp.status}): unexpected body {data!r}"
                        )
                    if resp.status >= 400 or not data.get("secure_url"):
                        error = data.get("error")
                        message = error.get("message", str(data)) if isinstance(error, dict) else str(data)
                        raise ImageHostError(f"Cloudinary upload failed (HTTP {resp.status}): {message}")
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError) as e:
            raise ImageHostError(f"Cloudinary upload failed: {str(e) or type(e).__name__}") from e

        _log(f"[Cloudinary] uploaded {file_path.name} -> {data['secure_url']}")
        return data["secure_url"]
