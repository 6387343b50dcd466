"""Marketplace data models and endpoint payloads."""

from __future__ import annotations

import math
import re
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .languages import Language

NOT_SPECIFIED = "Not specified"
DEFAULT_TITLE = "Product"

_LEADING_NUMBER = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)")


def _leading_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _LEADING_NUMBER.match(str(value or "").replace(",", ""))
        if not match:
            return None
        number = float(match.group(0))
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def coerce_price(value: Any) -> float:
    """Parse a price leniently; anything unusable or negative becomes 0."""
    number = _leading_number(value)
    if number is None or number < 0:
        return 0.0
    return number


def coerce_quantity(value: Any) -> int:
    """Parse a quantity leniently; anything unusable or below 1 becomes 1."""
    number = _leading_number(value)
    if number is None:
        return 1
    quantity = int(number)
    return quantity if quantity >= 1 else 1


class TurnRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Action(str, Enum):
    SELL = "sell"
    BUY = "buy"


class ProductStatus(str, Enum):
    ACTIVE = "active"
    SOLD = "sold"
    INACTIVE = "inactive"


class TranscriptTurn(BaseModel):
    role: TurnRole
    content: str

    def as_message(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class ProductDraft(BaseModel):
    """Unpersisted, user-editable listing produced by extraction."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    title: str = DEFAULT_TITLE
    description: str = ""
    price: float = 0.0
    quantity: int = 1
    location: str = NOT_SPECIFIED
    language: Language = Language.TWI
    original_text: str = Field(default="", alias="originalText")

    @field_validator("price", mode="before")
    @classmethod
    def _price(cls, value: Any) -> float:
        return coerce_price(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, value: Any) -> int:
        return coerce_quantity(value)

    @field_validator("location", mode="before")
    @classmethod
    def _location(cls, value: Any) -> str:
        text = str(value).strip() if value is not None else ""
        return text or NOT_SPECIFIED

    @field_validator("language", mode="before")
    @classmethod
    def _language(cls, value: Any) -> Language:
        return Language.parse(value, Language.TWI)


class Product(BaseModel):
    """Persisted listing as returned by the backend."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    seller_id: str
    title: str
    description: Optional[str] = None
    price: float = 0.0
    quantity: int = 1
    location: Optional[str] = None
    language: Optional[str] = None
    image_url: Optional[str] = None
    phone_number: Optional[str] = None
    status: ProductStatus = ProductStatus.ACTIVE
    created_at: Optional[datetime] = None


class TranscriptionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audio: Optional[str] = None
    audio_base64: Optional[str] = Field(default=None, alias="audioBase64")
    mime_type: str = Field(default="audio/webm", alias="mimeType")
    language: Language = Language.TWI

    @field_validator("language", mode="before")
    @classmethod
    def _language(cls, value: Any) -> Language:
        return Language.parse(value, Language.TWI)

    @property
    def encoded_audio(self) -> Optional[str]:
        return self.audio or self.audio_base64


class TranscriptionResponse(BaseModel):
    text: str
    language: Language


class ExtractionRequest(BaseModel):
    text: str = ""
    language: Language = Language.TWI
    action: Action = Action.SELL

    @field_validator("language", mode="before")
    @classmethod
    def _language(cls, value: Any) -> Language:
        return Language.parse(value, Language.TWI)

    @field_validator("action", mode="before")
    @classmethod
    def _action(cls, value: Any) -> Action:
        return Action.BUY if str(value or "").strip().lower() == Action.BUY.value else Action.SELL


class ChatRequest(BaseModel):
    messages: List[TranscriptTurn] = Field(default_factory=list)
    language: Language = Language.ENGLISH

    @field_validator("language", mode="before")
    @classmethod
    def _language(cls, value: Any) -> Language:
        return Language.parse(value, Language.ENGLISH)


class ChatResponse(BaseModel):
    message: str


class SpeechRequest(BaseModel):
    text: str = ""
    language: Language = Language.ENGLISH

    @field_validator("language", mode="before")
    @classmethod
    def _language(cls, value: Any) -> Language:
        return Language.parse(value, Language.ENGLISH)


class SpeechResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audio_content: str = Field(alias="audioContent")
    format: str


class CreateProductRequest(BaseModel):
    title: str
    description: Optional[str] = None
    price: Any = 0
    quantity: Any = 1
    location: Optional[str] = None
    language: Optional[str] = None
    image_url: Optional[str] = None
    phone_number: Optional[str] = None


class SearchRequest(BaseModel):
    query: str = ""
    location: Optional[str] = None


class ProductListResponse(BaseModel):
    products: List[Product] = Field(default_factory=list)
    count: int = 0
    query: Optional[str] = None
    location: Optional[str] = None


__all__ = [
    "NOT_SPECIFIED",
    "DEFAULT_TITLE",
    "coerce_price",
    "coerce_quantity",
    "TurnRole",
    "Action",
    "ProductStatus",
    "TranscriptTurn",
    "ProductDraft",
    "Product",
    "TranscriptionRequest",
    "TranscriptionResponse",
    "ExtractionRequest",
    "ChatRequest",
    "ChatResponse",
    "SpeechRequest",
    "SpeechResponse",
    "CreateProductRequest",
    "SearchRequest",
    "ProductListResponse",
]
