"""External service integrations."""

from .gemini import GeminiClient, resolve_voice, MAX_REFERENCE_IMAGES
from .retry import with_retry, is_transient
from .audio import pcm_to_wav

__all__ = [
    "GeminiClient",
    "resolve_voice",
    "MAX_REFERENCE_IMAGES",
    "with_retry",
    "is_transient",
    "pcm_to_wav",
]
