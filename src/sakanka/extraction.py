"""Structured product extraction from transcribed speech."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from typing import Any, Dict, Optional

from .languages import Language
from .llm_client import LLMEmptyReplyError, OpenAIChatClient
from .models import DEFAULT_TITLE, NOT_SPECIFIED, Action, ProductDraft
from .settings import Settings, settings as runtime_settings

logger = logging.getLogger(__name__)

FALLBACK_TITLE_CHARS = 50

EXTRACTION_SYSTEM_PROMPT = """You are a helpful assistant for a marketplace in Ghana.
Extract product information from voice transcriptions in Twi, Ga, Hausa, or English.

Extract and structure the following information:
- Product name/title
- Description
- Price (convert to GHS if mentioned)
- Quantity
- Location

Return ONLY valid JSON with this exact structure:
{
  "title": "product name",
  "description": "detailed description",
  "price": 0.00,
  "quantity": 1,
  "location": "location name"
}

If information is missing, use reasonable defaults:
- quantity: 1
- price: 0 (if not mentioned)
- location: "Not specified\""""

_FENCED_BLOCK = re.compile(r"```[ \t]*(?:json)?[ \t]*\r?\n?(.*?)\r?\n?[ \t]*```", re.DOTALL | re.IGNORECASE)


def strip_code_fence(reply: str) -> str:
    """Return the body of the first fenced code block, or the reply itself."""
    match = _FENCED_BLOCK.search(reply)
    body = match.group(1) if match else reply
    return body.strip()


def parse_reply(reply: Optional[str]) -> Optional[Dict[str, Any]]:
    """Parse a model reply into a field mapping; ``None`` when it is unusable."""
    if not reply or not reply.strip():
        return None
    try:
        parsed = json.loads(strip_code_fence(reply))
    except (ValueError, TypeError):
        return None
    return parsed if isinstance(parsed, dict) else None


def fallback_draft(text: str, language: Language) -> ProductDraft:
    return ProductDraft(
        title=text[:FALLBACK_TITLE_CHARS],
        description=text,
        price=0,
        quantity=1,
        location=NOT_SPECIFIED,
        language=language,
        original_text=text,
    )


def build_draft(fields: Optional[Dict[str, Any]], *, text: str, language: Language) -> ProductDraft:
    """Merge parsed model output with defaults; never raises."""
    if fields is None:
        return fallback_draft(text, language)
    return ProductDraft(
        title=str(fields.get("title") or DEFAULT_TITLE),
        description=str(fields.get("description") or text),
        price=fields.get("price"),
        quantity=fields.get("quantity"),
        location=fields.get("location") or NOT_SPECIFIED,
        language=language,
        original_text=text,
    )


def build_messages(text: str, action: Action) -> list[dict[str, str]]:
    role = "seller" if action is Action.SELL else "buyer"
    return [
        {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": f'Extract product information from this {role} message: "{text}"',
        },
    ]


class ProductExtractor:
    """Turns freeform text into a ProductDraft through the completion endpoint."""

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        llm_client_factory: Optional[Callable[[], OpenAIChatClient]] = None,
    ) -> None:
        self._settings = settings or runtime_settings
        self._llm_client_factory = llm_client_factory
        self._llm_client: Optional[OpenAIChatClient] = None

    async def extract(
        self,
        text: str,
        *,
        language: Language = Language.TWI,
        action: Action = Action.SELL,
    ) -> ProductDraft:
        """Extract a draft listing.

        Rate-limit, quota and other upstream failures propagate as
        ``UpstreamError`` subclasses. A reply that cannot be parsed is never an
        error: it degrades to the fallback draft.
        """

        logger.info(
            "extraction.start",
            extra={"language": language.value, "action": action.value, "chars": len(text)},
        )
        if not self._settings.llm.enabled:
            logger.warning("extraction.llm.disabled")
            return fallback_draft(text, language)

        client = self._ensure_llm_client()
        llm_cfg = self._settings.llm
        try:
            reply = await client.complete(
                build_messages(text, action),
                temperature=llm_cfg.extraction_temperature,
                max_tokens=llm_cfg.extraction_max_tokens,
                service="extraction",
            )
        except LLMEmptyReplyError:
            reply = ""

        fields = parse_reply(reply)
        if fields is None:
            logger.warning("extraction.parse.fallback", extra={"reply": (reply or "")[:200]})
        draft = build_draft(fields, text=text, language=language)
        logger.info(
            "extraction.done",
            extra={"title": draft.title, "price": draft.price, "quantity": draft.quantity},
        )
        return draft

    def _ensure_llm_client(self) -> OpenAIChatClient:
        if self._llm_client is None:
            if self._llm_client_factory is not None:
                self._llm_client = self._llm_client_factory()
            else:
                self._llm_client = OpenAIChatClient(self._settings.openai, self._settings.llm)
        return self._llm_client


__all__ = [
    "EXTRACTION_SYSTEM_PROMPT",
    "ProductExtractor",
    "build_draft",
    "build_messages",
    "fallback_draft",
    "parse_reply",
    "strip_code_fence",
]
