from __future__ import annotations

import io
import wave
from typing import Optional

from .base import TtsProvider


class MockTtsProvider(TtsProvider):
    """Emits a short silent WAV so the pipeline can run without a TTS account."""

    name = "mock"
    audio_format = "wav"

    def __init__(self, *, duration_ms: int = 200, sample_rate: int = 16000) -> None:
        super().__init__(voice=None)
        self._duration_ms = duration_ms
        self._sample_rate = sample_rate

    async def synthesize(self, *, text: str, voice: Optional[str] = None) -> bytes:
        frames = int(self._sample_rate * self._duration_ms / 1000)
        buffer = io.BytesIO()
        with wave.open(buffer, "wb") as wav:
            wav.setnchannels(1)
            wav.setsampwidth(2)
            wav.setframerate(self._sample_rate)
            wav.writeframes(b"\x00\x00" * frames)
        return buffer.getvalue()
