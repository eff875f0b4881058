"""Outbound ports — interfaces for external system adapters."""

from dataclasses import dataclass
from typing import Dict, Optional, Protocol, runtime_checkable


@dataclass
class PublishResult:
    """Unified result type for a publish attempt."""

    success: bool
    media_id: Optional[str] = None
    image_url: Optional[str] = None
    error: Optional[str] = None


@runtime_checkable
class PublisherPort(Protocol):
    """Interface for the social network a post is published to."""

    @property
    def is_configured(self) -> bool: ...

    async def publish(self, image_path: str, caption: str) -> PublishResult: ...


@runtime_checkable
class StoragePort(Protocol):
    """Interface for persistent storage."""

    def load(self, key: str) -> list: ...
    def save(self, key: str, data: list) -> None: ...


@runtime_checkable
class ImageHostPort(Protocol):
    """Interface for pushing a local image to a public host."""

    @property
    def is_configured(self) -> bool: ...

    async def upload(self, path: str, folder: Optional[str] = None) -> str: ...


@runtime_checkable
class BackgroundRemoverPort(Protocol):
    """Interface for cutting the subject out of a photo."""

    async def remove_background(self, path: str) -> bytes: ...


@runtime_checkable
class VisionPort(Protocol):
    """Interface for image understanding and background generation."""

    @property
    def is_configured(self) -> bool: ...

    async def analyze_bottle(self, image: bytes, mime: str = "image/jpeg") -> Dict[str, str]: ...

    async def generate_background(self, prompt: str) -> bytes: ...
