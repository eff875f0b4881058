"""Application state: wires storage, queue, dispatcher and service clients."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from insta_sake.adapters.ai.openai_vision import OpenAIVision
from insta_sake.adapters.ai.remove_bg import RemoveBgClient
from insta_sake.adapters.media.cloudinary import CloudinaryUploader
from insta_sake.adapters.sns.instagram import InstagramClient
from insta_sake.adapters.storage.json_store import JsonStorage
from insta_sake.adapters.storage.settings_file import SettingsFile
from insta_sake.config import AppConfig
from insta_sake.domain.post_queue import PostQueue
from insta_sake.domain.publishing import PostDispatcher
from insta_sake.ports.outbound import (
    BackgroundRemoverPort,
    ImageHostPort,
    PublisherPort,
    VisionPort,
)


def _log(msg: str):
    print(msg, file=sys.stderr)


class AppState:
    """Singleton-ish state container for all subsystems."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        publisher: Optional[PublisherPort] = None,
        image_host: Optional[ImageHostPort] = None,
        vision: Optional[VisionPort] = None,
        remover: Optional[BackgroundRemoverPort] = None,
    ):
        self.config = config or AppConfig.from_env()

        self.uploads_dir = Path(self.config.uploads_dir)
        self.uploads_dir.mkdir(parents=True, exist_ok=True)

        self.storage = JsonStorage(self.config.db_file)
        self.queue = PostQueue(self.storage, limit=self.config.post_limit)
        self.settings = SettingsFile(self.config.settings_file)

        self.publisher = publisher or InstagramClient()
        self.image_host = image_host or CloudinaryUploader(self.config.cloudinary)
        self.vision = vision or OpenAIVision()
        self.remover = remover or RemoveBgClient()

        self.dispatcher = PostDispatcher(
            self.queue,
            self.publisher,
            interval_seconds=self.config.scheduler_interval_seconds,
        )

        # Only the most recently issued login token is accepted
        self.auth_token: Optional[str] = None

        _log(
            f"[state] {len(self.queue.list_posts())} post(s) loaded from {self.storage.path}, "
            f"uploads in {self.uploads_dir}, image host "
            f"{'cloudinary' if self.image_host.is_configured else 'local'}"
        )


# Module-level singleton
_state: Optional[AppState] = None


def get_state() -> AppState:
    global _state
    if _state is None:
        _state = AppState()
    return _state


def reset_state(state: Optional[AppState] = None) -> None:
    """Replace (or drop) the singleton."""
    global _state
    _state = state
