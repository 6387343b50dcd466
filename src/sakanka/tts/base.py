from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class SpeechAudio:
    data: bytes
    format: str


class TtsProvider(abc.ABC):
    """Abstract text-to-speech provider interface."""

    name: str
    audio_format: str = "mp3"

    def __init__(self, *, voice: Optional[str] = None) -> None:
        self.voice = voice

    @abc.abstractmethod
    async def synthesize(self, *, text: str, voice: Optional[str] = None) -> bytes:
        """Return the complete encoded audio for ``text``."""

    async def shutdown(self) -> None:
        """Allow provider to cleanup resources if needed."""
        return None
