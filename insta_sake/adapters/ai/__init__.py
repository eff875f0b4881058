"""AI service adapters (OpenAI, remove.bg)."""

from insta_sake.adapters.ai.openai_vision import OpenAIVision, VisionError
from insta_sake.adapters.ai.remove_bg import BackgroundRemovalError, RemoveBgClient

__all__ = ["OpenAIVision", "VisionError", "BackgroundRemovalError", "RemoveBgClient"]
