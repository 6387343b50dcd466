from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from ..errors import AuthenticationError
from ..models import Product, ProductStatus
from .base import ProductStore


class MemoryProductStore(ProductStore):
    """Process-local store used for development and tests."""

    name = "memory"

    def __init__(
        self,
        *,
        tokens: Optional[Dict[str, str]] = None,
        sellers: Optional[set[str]] = None,
        phones: Optional[Dict[str, str]] = None,
    ) -> None:
        self._tokens = dict(tokens or {})
        self._sellers = set(sellers or ())
        self._phones = dict(phones or {})
        self._products: List[Product] = []
        self._lock = asyncio.Lock()

    def register_user(self, *, token: str, user_id: str, seller: bool = True, phone: Optional[str] = None) -> None:
        self._tokens[token] = user_id
        if seller:
            self._sellers.add(user_id)
        if phone:
            self._phones[user_id] = phone

    async def authenticate(self, access_token: str) -> str:
        user_id = self._tokens.get(access_token)
        if not user_id:
            raise AuthenticationError()
        return user_id

    async def is_seller(self, user_id: str) -> bool:
        return user_id in self._sellers

    async def profile_phone(self, user_id: str) -> Optional[str]:
        return self._phones.get(user_id)

    async def insert_product(self, record: Dict[str, Any]) -> Product:
        async with self._lock:
            created_at = datetime.now(timezone.utc)
            if self._products and self._products[-1].created_at and created_at <= self._products[-1].created_at:
                created_at = self._products[-1].created_at + timedelta(microseconds=1)
            product = Product(id=str(uuid.uuid4()), created_at=created_at, **record)
            self._products.append(product)
            return product

    async def search_products(self, *, query: str, location: Optional[str], limit: int) -> List[Product]:
        needle = query.lower()
        place = (location or "").lower()
        matches = [
            product
            for product in self._active_newest_first()
            if needle in product.title.lower() or needle in (product.description or "").lower()
        ]
        if place:
            matches = [product for product in matches if place in (product.location or "").lower()]
        return matches[:limit]

    async def list_products(self, *, limit: int) -> List[Product]:
        return self._active_newest_first()[:limit]

    def _active_newest_first(self) -> List[Product]:
        active = [product for product in self._products if product.status is ProductStatus.ACTIVE]
        return list(reversed(active))
