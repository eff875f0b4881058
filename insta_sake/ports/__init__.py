"""Port interfaces (Hexagonal Architecture)."""

from insta_sake.ports.outbound import (
    BackgroundRemoverPort,
    ImageHostPort,
    PublisherPort,
    PublishResult,
    StoragePort,
    VisionPort,
)

__all__ = [
    "BackgroundRemoverPort",
    "ImageHostPort",
    "PublisherPort",
    "PublishResult",
    "StoragePort",
    "VisionPort",
]
