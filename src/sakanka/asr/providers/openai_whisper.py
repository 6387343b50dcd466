from __future__ import annotations

import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

from ...audio.types import AudioSample
from ...llm_client import translate_openai_error
from ..types import AsrOptions, AsrResult
from .base import AsrProvider

logger = logging.getLogger(__name__)


class OpenAIWhisperProvider(AsrProvider):
    """Hosted Whisper transcription through the OpenAI-compatible gateway."""

    name = "openai"

    def __init__(self, *, client: AsyncOpenAI, model: str = "whisper-1", owns_client: bool = False) -> None:
        self._client = client
        self._model = model
        self._owns_client = owns_client

    async def transcribe(self, *, sample: AudioSample, options: AsrOptions) -> AsrResult:
        # The language hint is only echoed back: decoding auto-detects, since
        # Twi and Ga have no Whisper language code.
        params = {
            "model": self._model,
            "file": (sample.filename, sample.data, sample.mime_type),
        }
        if options.prompt:
            params["prompt"] = options.prompt
        try:
            response = await self._client.audio.transcriptions.create(**params)
        except openai.OpenAIError as exc:
            logger.warning("asr.openai.error", extra={"model": self._model, "error": repr(exc)})
            raise translate_openai_error(exc, service="transcription") from exc

        text: Optional[str] = getattr(response, "text", None)
        return AsrResult(text=(text or "").strip(), language=options.language_hint, provider=self.name)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.close()
