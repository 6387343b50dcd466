from __future__ import annotations

import logging
import time
from typing import Optional

from ..errors import UpstreamError
from ..languages import Language
from ..llm_client import build_async_openai
from ..settings import OpenAISettings, TtsSettings
from .base import SpeechAudio, TtsProvider
from .mock import MockTtsProvider
from .openai_tts import OpenAITtsProvider

try:
    from .edge_tts_provider import EdgeTtsProvider
except (RuntimeError, ModuleNotFoundError):  # pragma: no cover - optional dependency missing
    EdgeTtsProvider = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)


class TtsService:
    """Coordinates speech synthesis for assistant replies."""

    def __init__(self, *, provider: Optional[TtsProvider] = None) -> None:
        self._provider = provider or MockTtsProvider()

    @classmethod
    def from_settings(cls, cfg: TtsSettings | None, openai_cfg: OpenAISettings | None = None) -> "TtsService":
        provider: Optional[TtsProvider] = None
        if cfg is not None:
            provider_name = (cfg.provider or "mock").strip().lower()
            if provider_name in {"mock", "fake"}:
                provider = MockTtsProvider()
            elif provider_name == "openai":
                if openai_cfg is None:
                    raise RuntimeError("OpenAI settings required for the openai TTS provider")
                provider = OpenAITtsProvider(
                    client=build_async_openai(openai_cfg, timeout=30.0),
                    model=cfg.model,
                    voice=cfg.voice,
                    response_format=cfg.response_format,
                    owns_client=True,
                )
            elif provider_name in {"edge", "edge-tts"}:
                if EdgeTtsProvider is None:
                    raise RuntimeError("EdgeTTS provider requested but edge-tts dependency unavailable")
                provider = EdgeTtsProvider(voice=cfg.edge_voice, rate=cfg.edge_rate, volume=cfg.edge_volume)
            else:
                raise RuntimeError(f"unsupported TTS provider: {cfg.provider}")
        return cls(provider=provider)

    async def synthesize(self, text: str, *, language: Language) -> SpeechAudio:
        started = time.perf_counter()
        data = await self._provider.synthesize(text=text)
        if not data:
            raise UpstreamError("speech synthesis returned no audio", service="speech synthesis")
        logger.info(
            "tts.synthesize.done",
            extra={
                "provider": self._provider.name,
                "language": language.value,
                "bytes": len(data),
                "latency_ms": round((time.perf_counter() - started) * 1000.0, 1),
            },
        )
        return SpeechAudio(data=data, format=self._provider.audio_format)

    async def close(self) -> None:
        await self._provider.shutdown()

    @property
    def provider(self) -> TtsProvider:
        return self._provider
