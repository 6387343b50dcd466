"""Chat completion client for the AI gateway."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Dict, Optional

import openai
from openai import AsyncOpenAI

from .errors import UpstreamError, upstream_error_for_status
from .settings import LLMSettings, OpenAISettings, settings

logger = logging.getLogger(__name__)

ChatMessage = Dict[str, Any]


class LLMNotConfiguredError(RuntimeError):
    """Raised when trying to use the LLM client without runtime configuration."""


class LLMEmptyReplyError(UpstreamError):
    """Raised when a completion finishes without any text content."""


def build_async_openai(openai_cfg: OpenAISettings, *, timeout: float) -> AsyncOpenAI:
    """Create a gateway client that makes exactly one attempt per call."""
    if not openai_cfg.api_key:
        raise LLMNotConfiguredError("OPENAI_API_KEY is required for real LLM usage")
    return AsyncOpenAI(
        api_key=openai_cfg.api_key,
        base_url=openai_cfg.base_url,
        organization=openai_cfg.organization,
        timeout=timeout,
        max_retries=0,
    )


def translate_openai_error(exc: Exception, *, service: str) -> UpstreamError:
    """Convert an ``openai`` exception into the marketplace error taxonomy."""
    if isinstance(exc, openai.APIStatusError):
        return upstream_error_for_status(exc.status_code, service=service, detail=f"{service} failed")
    return UpstreamError(f"{service} failed", service=service)


class OpenAIChatClient:
    """Thin wrapper around AsyncOpenAI for single-shot chat completions."""

    def __init__(
        self,
        openai_cfg: Optional[OpenAISettings] = None,
        llm_cfg: Optional[LLMSettings] = None,
        *,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self._openai_cfg = openai_cfg or settings.openai
        self._llm_cfg = llm_cfg or settings.llm
        if client is None:
            self._client = build_async_openai(self._openai_cfg, timeout=self._llm_cfg.timeout)
            self._owns_client = True
        else:
            self._client = client
            self._owns_client = False

    async def close(self) -> None:
        if self._owns_client:
            await self._client.close()

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        service: str = "completion",
    ) -> str:
        """Issue one chat completion and return the reply text.

        There is no retry: a failure is reported to the caller, who decides
        whether the user should try again.
        """

        cfg = self._llm_cfg
        params: Dict[str, Any] = {
            "model": model or cfg.model,
            "messages": list(messages),
            "temperature": temperature if temperature is not None else cfg.chat_temperature,
        }
        if max_tokens is not None:
            params["max_tokens"] = max_tokens

        try:
            resp = await self._client.chat.completions.create(**params)
        except openai.OpenAIError as exc:
            logger.warning(
                "llm.complete.error",
                extra={"model": params["model"], "service": service, "error": repr(exc)},
            )
            raise translate_openai_error(exc, service=service) from exc

        for choice in getattr(resp, "choices", None) or []:
            message = getattr(choice, "message", None)
            content = getattr(message, "content", None) if message else None
            if isinstance(content, str) and content.strip():
                logger.info(
                    "llm.complete.done",
                    extra={"model": params["model"], "service": service, "chars": len(content)},
                )
                return content

        logger.warning("llm.complete.empty", extra={"model": params["model"], "service": service})
        raise LLMEmptyReplyError(f"{service} returned no content", service=service)


__all__ = [
    "OpenAIChatClient",
    "LLMNotConfiguredError",
    "LLMEmptyReplyError",
    "ChatMessage",
    "build_async_openai",
    "translate_openai_error",
]
