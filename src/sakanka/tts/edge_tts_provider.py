from __future__ import annotations

from typing import Optional

try:
    import edge_tts
except ImportError as exc:  # pragma: no cover - import guard
    raise RuntimeError("edge-tts must be installed to use EdgeTtsProvider") from exc

from .base import TtsProvider


class EdgeTtsProvider(TtsProvider):
    name = "edge-tts"
    audio_format = "mp3"

    def __init__(
        self,
        *,
        voice: str,
        rate: str = "+0%",
        volume: str = "+0%",
    ) -> None:
        super().__init__(voice=voice)
        self._rate = rate
        self._volume = volume

    async def synthesize(self, *, text: str, voice: Optional[str] = None) -> bytes:
        communicate = edge_tts.Communicate(
            text,
            voice or self.voice,
            rate=self._rate,
            volume=self._volume,
        )
        chunks: list[bytes] = []
        async for chunk in communicate.stream():
            if chunk.get("type") == "audio":
                data = chunk.get("data")
                if data:
                    chunks.append(data)
        return b"".join(chunks)
