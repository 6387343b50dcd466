"""Review, edit and publish an extracted listing."""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable
from typing import Any, Optional

from .errors import (
    AuthenticationError,
    DraftValidationError,
    MarketplaceError,
    PermissionDeniedError,
    PersistenceError,
)
from .languages import Language
from .models import NOT_SPECIFIED, Product, ProductDraft
from .storage.base import ProductStore, listing_record

logger = logging.getLogger(__name__)

ListingWriter = Callable[[ProductDraft], Awaitable[Product]]

EDITABLE_FIELDS = ("title", "description", "price", "quantity", "location", "language")


def store_writer(
    store: ProductStore,
    seller_id: str,
    *,
    image_url: Optional[str] = None,
    phone_number: Optional[str] = None,
) -> ListingWriter:
    """Write path that inserts straight into a ``ProductStore`` for an already authenticated seller."""

    async def write(draft: ProductDraft) -> Product:
        record = listing_record(
            seller_id=seller_id,
            title=draft.title,
            description=draft.description,
            price=draft.price,
            quantity=draft.quantity,
            location=draft.location,
            language=draft.language.value,
            image_url=image_url,
            phone_number=phone_number,
        )
        return await store.insert_product(record)

    return write


def _parse_number(field: str, value: Any) -> float:
    if isinstance(value, bool):
        raise DraftValidationError(f"{field} must be a number")
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip().replace(",", ""))
        except ValueError as exc:
            raise DraftValidationError(f"{field} must be a number") from exc
    if math.isnan(number) or math.isinf(number):
        raise DraftValidationError(f"{field} must be a number")
    return number


def validate_edit(field: str, value: Any) -> Any:
    """Return the normalized value for ``field`` or raise ``DraftValidationError``."""
    if field not in EDITABLE_FIELDS:
        raise DraftValidationError(f"Unknown field: {field}")
    if field == "price":
        price = _parse_number(field, value)
        if price < 0:
            raise DraftValidationError("price cannot be negative")
        return price
    if field == "quantity":
        quantity = _parse_number(field, value)
        if quantity < 1 or not quantity.is_integer():
            raise DraftValidationError("quantity must be a whole number of at least 1")
        return int(quantity)
    if field == "language":
        text = str(value or "").strip().lower()
        if text not in {language.value for language in Language}:
            raise DraftValidationError(f"Unsupported language: {value}")
        return Language(text)
    text = "" if value is None else str(value).strip()
    if field == "title" and not text:
        raise DraftValidationError("title cannot be empty")
    if field == "location" and not text:
        return NOT_SPECIFIED
    return text


class ListingConfirmation:
    """Holds the draft a seller is reviewing until it is published."""

    def __init__(self, draft: ProductDraft, *, writer: ListingWriter) -> None:
        self._draft = draft.model_copy()
        self._writer = writer
        self._product: Optional[Product] = None

    @property
    def draft(self) -> ProductDraft:
        return self._draft.model_copy()

    @property
    def product(self) -> Optional[Product]:
        return self._product

    def edit(self, field: str, value: Any) -> ProductDraft:
        normalized = validate_edit(field, value)
        self._draft = self._draft.model_copy(update={field: normalized})
        logger.debug("confirmation.edit", extra={"field": field})
        return self.draft

    async def submit(self) -> Product:
        """Publish the draft; on failure the draft is kept unchanged for another attempt."""
        try:
            product = await self._writer(self._draft)
        except (AuthenticationError, PermissionDeniedError, PersistenceError):
            raise
        except MarketplaceError as exc:
            logger.warning("confirmation.submit.failed", extra={"error": exc.message})
            raise PersistenceError() from exc
        self._product = product
        logger.info("confirmation.submit.done", extra={"product_id": product.id})
        return product


__all__ = ["ListingConfirmation", "ListingWriter", "store_writer", "validate_edit", "EDITABLE_FIELDS"]
