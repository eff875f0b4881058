"""Social network adapters."""

from insta_sake.adapters.sns.instagram import (
    InstagramClient,
    InstagramPublishError,
    RateLimitError,
)

__all__ = ["InstagramClient", "InstagramPublishError", "RateLimitError"]
