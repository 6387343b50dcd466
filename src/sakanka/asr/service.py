from __future__ import annotations

import logging
import time
from typing import Optional

from ..audio.types import AudioSample
from ..errors import EmptyTranscriptError
from ..languages import Language
from ..llm_client import build_async_openai
from ..settings import AsrSettings, OpenAISettings
from .providers.base import AsrProvider
from .providers.mock import MockAsrProvider
from .providers.openai_whisper import OpenAIWhisperProvider
from .types import AsrOptions, AsrResult

logger = logging.getLogger(__name__)


def build_prompt(language: Language) -> str:
    """Domain context that biases recognition towards marketplace vocabulary."""
    return (
        f"This is a marketplace listing in {language.value}. "
        "The speaker is describing a product they want to sell or buy."
    )


class AsrService:
    """Coordinates ASR provider usage."""

    def __init__(self, *, provider: Optional[AsrProvider] = None) -> None:
        self._provider = provider or MockAsrProvider()

    @classmethod
    def from_settings(cls, cfg: AsrSettings | None, openai_cfg: OpenAISettings | None = None) -> "AsrService":
        provider: Optional[AsrProvider] = None
        if cfg is not None:
            provider_name = (cfg.provider or "mock").strip().lower()
            if provider_name in {"mock", "fake"}:
                provider = MockAsrProvider()
            elif provider_name in {"openai", "whisper"}:
                if openai_cfg is None:
                    raise RuntimeError("OpenAI settings required for the openai ASR provider")
                provider = OpenAIWhisperProvider(
                    client=build_async_openai(openai_cfg, timeout=cfg.timeout),
                    model=cfg.model,
                    owns_client=True,
                )
            else:
                raise RuntimeError(f"unsupported ASR provider: {cfg.provider}")
        return cls(provider=provider)

    async def transcribe(self, sample: AudioSample, *, language: Language) -> AsrResult:
        """Transcribe one recording in a single attempt.

        Raises ``EmptyTranscriptError`` when nothing was recognised.
        """

        options = AsrOptions(language_hint=language.value, prompt=build_prompt(language))
        started = time.perf_counter()
        result = await self._provider.transcribe(sample=sample, options=options)
        latency_ms = (time.perf_counter() - started) * 1000.0
        text = (result.text or "").strip()
        if not text:
            logger.warning("asr.transcribe.empty", extra={"provider": self._provider.name})
            raise EmptyTranscriptError(service="transcription")
        logger.info(
            "asr.transcribe.done",
            extra={
                "provider": result.provider or self._provider.name,
                "language": language.value,
                "latency_ms": round(latency_ms, 1),
                "chars": len(text),
            },
        )
        return AsrResult(text=text, language=language.value, provider=result.provider or self._provider.name)

    async def close(self) -> None:
        await self._provider.close()

    @property
    def provider(self) -> AsrProvider:
        return self._provider
