"""Image hosting adapters."""

from insta_sake.adapters.media.cloudinary import CloudinaryUploader, ImageHostError

__all__ = ["CloudinaryUploader", "ImageHostError"]
