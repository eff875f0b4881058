"""insta-sake: scheduled Instagram posting with AI product-photo tools."""

from insta_sake.config import CONFIG, AppConfig, __version__
from insta_sake.domain import (
    CleanParams,
    LabelParams,
    PostDispatcher,
    PostQueue,
    ScheduledPost,
    publish_post,
)
from insta_sake.ports import PublishResult
from insta_sake.adapters.storage.json_store import JsonStorage
from insta_sake.adapters.sns.instagram import InstagramClient

__all__ = [
    "CONFIG",
    "AppConfig",
    "__version__",
    "CleanParams",
    "LabelParams",
    "PostDispatcher",
    "PostQueue",
    "ScheduledPost",
    "publish_post",
    "PublishResult",
    "JsonStorage",
    "InstagramClient",
]
