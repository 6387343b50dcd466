from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Dict, List, Optional

from .languages import Language, persona_for
from .llm_client import OpenAIChatClient
from .models import TranscriptTurn
from .settings import Settings, settings as runtime_settings

logger = logging.getLogger(__name__)


class ChatService:
    """Marketplace assistant replies with an optional real LLM."""

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        llm_client_factory: Optional[Callable[[], OpenAIChatClient]] = None,
    ) -> None:
        self._settings = settings or runtime_settings
        self._llm_client_factory = llm_client_factory
        self._llm_client: Optional[OpenAIChatClient] = None

        self.last_source: str = "mock"
        self.last_latency_ms: Optional[float] = None

    async def reply(self, messages: Sequence[TranscriptTurn], *, language: Language) -> str:
        """Reply to the whole ordered conversation in the persona for ``language``.

        Upstream failures propagate; only a disabled LLM uses the canned reply.
        """

        self.last_latency_ms = None
        start = time.perf_counter()
        if not self._settings.llm.enabled:
            self.last_source = "mock"
            text = self._craft_reply(messages)
        else:
            client = self._ensure_llm_client()
            text = await client.complete(
                self._compose_messages(messages, language=language),
                temperature=self._settings.llm.chat_temperature,
                service="assistant",
            )
            self.last_source = "llm"
        self.last_latency_ms = (time.perf_counter() - start) * 1000.0
        logger.info(
            "chat.reply.done",
            extra={
                "source": self.last_source,
                "turns": len(messages),
                "language": language.value,
                "latency_ms": round(self.last_latency_ms, 1),
            },
        )
        return text

    def _compose_messages(self, messages: Sequence[TranscriptTurn], *, language: Language) -> List[Dict[str, str]]:
        composed = [{"role": "system", "content": persona_for(language).system_prompt}]
        composed.extend(turn.as_message() for turn in messages)
        return composed

    def _ensure_llm_client(self) -> OpenAIChatClient:
        if self._llm_client is not None:
            return self._llm_client

        if self._llm_client_factory is not None:
            client = self._llm_client_factory()
        else:
            client = OpenAIChatClient(self._settings.openai, self._settings.llm)
        self._llm_client = client
        return client

    def _craft_reply(self, messages: Sequence[TranscriptTurn]) -> str:
        last_user = next((turn.content for turn in reversed(messages) if turn.role.value == "user"), "")
        if not last_user.strip():
            return "Hello! Tell me what you would like to sell or buy today."
        return (
            f"You said: '{last_user.strip()}'. Tell me the price, the quantity and where you are, "
            "and I will help you list it."
        )


__all__ = ["ChatService"]
