from __future__ import annotations

import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

from ..llm_client import translate_openai_error
from .base import TtsProvider

logger = logging.getLogger(__name__)


class OpenAITtsProvider(TtsProvider):
    """
    TTS provider for OpenAI's Text-to-Speech API.
    """

    name = "openai"

    def __init__(
        self,
        *,
        client: AsyncOpenAI,
        model: str = "tts-1",
        voice: str = "alloy",
        response_format: str = "mp3",
        owns_client: bool = False,
    ) -> None:
        super().__init__(voice=voice)
        self._client = client
        self._model = model
        self._owns_client = owns_client
        self.audio_format = response_format

    async def synthesize(self, *, text: str, voice: Optional[str] = None) -> bytes:
        try:
            response = await self._client.audio.speech.create(
                model=self._model,
                voice=voice or self.voice,
                input=text,
                response_format=self.audio_format,
            )
        except openai.OpenAIError as exc:
            logger.warning("tts.openai.error", extra={"model": self._model, "error": repr(exc)})
            raise translate_openai_error(exc, service="speech synthesis") from exc
        return response.content

    async def shutdown(self) -> None:
        if self._owns_client:
            await self._client.close()
