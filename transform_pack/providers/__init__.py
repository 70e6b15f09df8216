"""API provider clients for external services."""

from .base import BaseProvider, ImageBackend
from .gemini import GeminiClient

__all__ = [
    "BaseProvider",
    "ImageBackend",
    "GeminiClient",
]
