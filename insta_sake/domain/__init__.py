"""Domain layer — pure Python, no framework dependencies."""

from insta_sake.domain.models import (
    STATUS_FAILED,
    STATUS_POSTED,
    STATUS_SCHEDULED,
    ScheduledPost,
    parse_schedule_time,
)
from insta_sake.domain.post_queue import PostQueue
from insta_sake.domain.publishing import PostDispatcher, PostNotFound, PublishInProgress, publish_post
from insta_sake.domain.image_params import CleanParams, LabelParams, STUDIO_TONES

__all__ = [
    "STATUS_FAILED",
    "STATUS_POSTED",
    "STATUS_SCHEDULED",
    "ScheduledPost",
    "parse_schedule_time",
    "PostQueue",
    "PostDispatcher",
    "PostNotFound",
    "PublishInProgress",
    "publish_post",
    "CleanParams",
    "LabelParams",
    "STUDIO_TONES",
]
