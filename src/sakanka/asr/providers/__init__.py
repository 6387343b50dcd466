"""ASR provider implementations."""

from .base import AsrProvider
from .mock import MockAsrProvider
from .openai_whisper import OpenAIWhisperProvider

__all__ = [
    "AsrProvider",
    "MockAsrProvider",
    "OpenAIWhisperProvider",
]
