"""Image compositing (Pillow)."""

from insta_sake.adapters.imaging.compositor import (
    clean_studio,
    composite_on_background,
    label_export,
)

__all__ = ["clean_studio", "composite_on_background", "label_export"]
