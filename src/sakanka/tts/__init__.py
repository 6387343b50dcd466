"""Text-to-speech for assistant replies."""

from .base import SpeechAudio, TtsProvider
from .mock import MockTtsProvider
from .service import TtsService

__all__ = ["SpeechAudio", "TtsProvider", "MockTtsProvider", "TtsService"]
