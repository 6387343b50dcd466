from __future__ import annotations

import asyncio
import io
import logging

try:  # pragma: no cover - PortAudio may be missing on headless hosts
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore[assignment]

try:  # pragma: no cover - optional dependency guard
    import soundfile as sf
except Exception:  # pragma: no cover
    sf = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)


class AudioPlayer:
    """Plays synthesized speech on the default output device."""

    async def play(self, audio: bytes) -> None:
        if not audio:
            return
        await asyncio.to_thread(self._play_blocking, audio)

    def _play_blocking(self, audio: bytes) -> None:
        if sd is None or sf is None:
            raise RuntimeError("sounddevice and soundfile are required for playback")
        data, sample_rate = sf.read(io.BytesIO(audio), dtype="float32")
        sd.play(data, sample_rate)
        sd.wait()
        logger.debug("playback.done", extra={"frames": len(data), "sample_rate": sample_rate})


__all__ = ["AudioPlayer"]
