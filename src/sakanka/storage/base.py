from __future__ import annotations

import abc
from typing import Any, Dict, List, Optional

from ..languages import Language
from ..models import Product, ProductStatus, coerce_price, coerce_quantity


def listing_record(
    *,
    seller_id: str,
    title: str,
    description: Optional[str],
    price: Any,
    quantity: Any,
    location: Optional[str],
    language: Optional[str] = None,
    image_url: Optional[str] = None,
    phone_number: Optional[str] = None,
) -> Dict[str, Any]:
    """Row inserted for a confirmed listing; numbers are always finite."""
    return {
        "seller_id": seller_id,
        "title": title,
        "description": description or None,
        "price": coerce_price(price),
        "quantity": coerce_quantity(quantity),
        "location": location or "",
        "language": Language.parse(language, Language.TWI).value,
        "image_url": image_url,
        "phone_number": phone_number,
        "status": ProductStatus.ACTIVE.value,
    }


class ProductStore(abc.ABC):
    """Write and read paths of the hosted marketplace database."""

    name: str

    @abc.abstractmethod
    async def authenticate(self, access_token: str) -> str:
        """Resolve a bearer token to the user id; raise AuthenticationError."""

    @abc.abstractmethod
    async def is_seller(self, user_id: str) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    async def profile_phone(self, user_id: str) -> Optional[str]:
        raise NotImplementedError

    @abc.abstractmethod
    async def insert_product(self, record: Dict[str, Any]) -> Product:
        """Persist a listing row; raise PersistenceError when rejected."""

    @abc.abstractmethod
    async def search_products(self, *, query: str, location: Optional[str], limit: int) -> List[Product]:
        """Active products whose title or description contains ``query``, newest first."""

    @abc.abstractmethod
    async def list_products(self, *, limit: int) -> List[Product]:
        """Active products, newest first."""

    async def close(self) -> None:
        return None
