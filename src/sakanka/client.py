"""HTTP client for the marketplace service endpoints."""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Sequence
from typing import Any, Dict, List, Optional, Type

import httpx
from pydantic import ValidationError

from .audio.types import AudioSample
from .errors import (
    GENERIC_FAILURE_MESSAGE,
    AuthenticationError,
    BadRequestError,
    EmptyTranscriptError,
    MarketplaceError,
    PermissionDeniedError,
    PersistenceError,
    UpstreamError,
    upstream_error_for_status,
)
from .languages import Language
from .models import Action, Product, ProductDraft, TranscriptTurn
from .settings import ServiceSettings
from .tts.base import SpeechAudio

logger = logging.getLogger(__name__)


class MarketplaceClient:
    """Calls each service endpoint exactly once per user action."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 90.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {"content-type": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["authorization"] = f"Bearer {api_key}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, cfg: ServiceSettings) -> "MarketplaceClient":
        return cls(base_url=cfg.base_url, api_key=cfg.api_key, timeout=cfg.timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "MarketplaceClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def transcribe(self, sample: AudioSample, *, language: Language) -> str:
        data = await self._post(
            "/voice-to-text",
            {"audio": sample.to_base64(), "mimeType": sample.mime_type, "language": language.value},
            service="transcription",
        )
        text = str(data.get("text") or "").strip()
        if not text:
            raise EmptyTranscriptError(service="transcription")
        return text

    async def extract(
        self,
        text: str,
        *,
        language: Language,
        action: Action = Action.SELL,
    ) -> ProductDraft:
        data = await self._post(
            "/extract-product-info",
            {"text": text, "language": language.value, "action": action.value},
            service="extraction",
        )
        data.setdefault("originalText", text)
        data.setdefault("language", language.value)
        return ProductDraft.model_validate(data)

    async def chat(self, history: Sequence[TranscriptTurn], *, language: Language) -> str:
        data = await self._post(
            "/voice-assistant",
            {"messages": [turn.as_message() for turn in history], "language": language.value},
            service="assistant",
        )
        message = str(data.get("message") or "").strip()
        if not message:
            raise UpstreamError(GENERIC_FAILURE_MESSAGE, service="assistant")
        return message

    async def synthesize(self, text: str, *, language: Language) -> SpeechAudio:
        data = await self._post(
            "/text-to-speech",
            {"text": text, "language": language.value},
            service="speech synthesis",
        )
        try:
            audio = base64.b64decode(str(data.get("audioContent") or ""), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise UpstreamError(GENERIC_FAILURE_MESSAGE, service="speech synthesis") from exc
        if not audio:
            raise UpstreamError(GENERIC_FAILURE_MESSAGE, service="speech synthesis")
        return SpeechAudio(data=audio, format=str(data.get("format") or "mp3"))

    async def create_product(
        self,
        draft: ProductDraft,
        *,
        access_token: str,
        image_url: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> Product:
        payload = {
            "title": draft.title,
            "description": draft.description,
            "price": draft.price,
            "quantity": draft.quantity,
            "location": draft.location,
            "language": draft.language.value,
            "image_url": image_url,
            "phone_number": phone_number,
        }
        data = await self._post(
            "/create-product",
            payload,
            service="create-product",
            headers={"authorization": f"Bearer {access_token}"},
            failure=PersistenceError,
        )
        product = data.get("product")
        if not isinstance(product, dict):
            raise PersistenceError()
        try:
            return Product.model_validate(product)
        except ValidationError as exc:
            logger.warning("client.create_product.malformed", extra={"error": str(exc)})
            raise PersistenceError() from exc

    async def search(self, query: str, *, location: Optional[str] = None) -> List[Product]:
        payload: Dict[str, Any] = {"query": query}
        if location:
            payload["location"] = location
        data = await self._post("/search-products", payload, service="search")
        return [Product.model_validate(item) for item in data.get("products") or []]

    async def browse(self, *, limit: Optional[int] = None) -> List[Product]:
        params = {"limit": limit} if limit else None
        data = await self._request("GET", "/products", service="browse", params=params)
        return [Product.model_validate(item) for item in data.get("products") or []]

    async def _post(
        self,
        path: str,
        payload: Dict[str, Any],
        *,
        service: str,
        headers: Optional[Dict[str, str]] = None,
        failure: Type[MarketplaceError] = UpstreamError,
    ) -> Dict[str, Any]:
        return await self._request("POST", path, service=service, json=payload, headers=headers, failure=failure)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        service: str,
        failure: Type[MarketplaceError] = UpstreamError,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("client.request.error", extra={"path": path, "error": repr(exc)})
            raise self._failure(failure, service, None) from exc

        if response.status_code >= 400:
            message = self._error_message(response)
            logger.warning(
                "client.request.failed",
                extra={"path": path, "status": response.status_code, "error": message},
            )
            raise self._error_for(response.status_code, message, service=service, failure=failure)

        try:
            data = response.json()
        except ValueError as exc:
            raise self._failure(failure, service, response.status_code) from exc
        if not isinstance(data, dict):
            raise self._failure(failure, service, response.status_code)
        return data

    def _error_for(
        self,
        status: int,
        message: Optional[str],
        *,
        service: str,
        failure: Type[MarketplaceError],
    ) -> MarketplaceError:
        if status in (402, 429):
            return upstream_error_for_status(status, service=service)
        if status == 401:
            return AuthenticationError(message)
        if status == 403:
            return PermissionDeniedError(message)
        if status == 400:
            return BadRequestError(message)
        return self._failure(failure, service, status)

    @staticmethod
    def _failure(failure: Type[MarketplaceError], service: str, status: Optional[int]) -> MarketplaceError:
        if issubclass(failure, UpstreamError):
            return failure(GENERIC_FAILURE_MESSAGE, service=service, upstream_status=status)
        return failure()

    @staticmethod
    def _error_message(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return None


__all__ = ["MarketplaceClient"]
