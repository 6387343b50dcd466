"""Supabase (PostgREST + GoTrue) client for the marketplace tables."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from ..errors import AuthenticationError, PersistenceError
from ..models import Product, ProductStatus
from .base import ProductStore

logger = logging.getLogger(__name__)

PRODUCT_SELECT = "*,profiles(full_name,phone_number,location)"

# PostgREST reserves these inside filter values.
_RESERVED = re.compile(r"[,()*%\"\\]")


def _ilike_term(value: str) -> str:
    return f"*{_RESERVED.sub(' ', value).strip()}*"


class SupabaseProductStore(ProductStore):
    name = "supabase"

    def __init__(
        self,
        *,
        base_url: str,
        service_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._service_key = service_key
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def authenticate(self, access_token: str) -> str:
        client = self._ensure_client()
        try:
            response = await client.get(
                "/auth/v1/user",
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as exc:
            logger.warning("backend.auth.error", extra={"error": repr(exc)})
            raise AuthenticationError() from exc
        if response.status_code != 200:
            logger.info("backend.auth.rejected", extra={"status": response.status_code})
            raise AuthenticationError()
        try:
            body = response.json()
        except ValueError as exc:
            logger.info("backend.auth.malformed", extra={"status": response.status_code})
            raise AuthenticationError() from exc
        user_id = body.get("id") if isinstance(body, dict) else None
        if not user_id:
            raise AuthenticationError()
        return str(user_id)

    async def is_seller(self, user_id: str) -> bool:
        rows = await self._select(
            "user_roles",
            {"select": "role", "user_id": f"eq.{user_id}", "role": "eq.seller", "limit": "1"},
        )
        return bool(rows)

    async def profile_phone(self, user_id: str) -> Optional[str]:
        rows = await self._select(
            "profiles",
            {"select": "phone_number", "id": f"eq.{user_id}", "limit": "1"},
        )
        if not rows:
            return None
        return rows[0].get("phone_number") or None

    async def insert_product(self, record: Dict[str, Any]) -> Product:
        client = self._ensure_client()
        try:
            response = await client.post(
                "/rest/v1/products",
                json=record,
                headers={"Prefer": "return=representation"},
            )
        except httpx.HTTPError as exc:
            logger.error("backend.products.insert_error", extra={"error": repr(exc)})
            raise PersistenceError() from exc
        if response.status_code >= 400:
            logger.error(
                "backend.products.insert_rejected",
                extra={"status": response.status_code, "body": response.text[:500]},
            )
            raise PersistenceError()
        rows = response.json()
        row = rows[0] if isinstance(rows, list) and rows else rows
        if not isinstance(row, dict):
            raise PersistenceError()
        product = Product.model_validate(row)
        logger.info("backend.products.inserted", extra={"product_id": product.id})
        return product

    async def search_products(self, *, query: str, location: Optional[str], limit: int) -> List[Product]:
        term = _ilike_term(query)
        params: Dict[str, str] = {
            "select": PRODUCT_SELECT,
            "status": f"eq.{ProductStatus.ACTIVE.value}",
            "or": f"(title.ilike.{term},description.ilike.{term})",
            "order": "created_at.desc",
            "limit": str(limit),
        }
        if location and location.strip():
            params["location"] = f"ilike.{_ilike_term(location)}"
        rows = await self._select("products", params)
        return [Product.model_validate(row) for row in rows]

    async def list_products(self, *, limit: int) -> List[Product]:
        rows = await self._select(
            "products",
            {
                "select": "*,profiles(full_name,phone_number)",
                "status": f"eq.{ProductStatus.ACTIVE.value}",
                "order": "created_at.desc",
                "limit": str(limit),
            },
        )
        return [Product.model_validate(row) for row in rows]

    async def _select(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        client = self._ensure_client()
        try:
            response = await client.get(f"/rest/v1/{table}", params=params)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("backend.select.error", extra={"table": table, "error": repr(exc)})
            raise PersistenceError(f"Could not read {table}.") from exc
        data = response.json()
        return data if isinstance(data, list) else []

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
                headers={
                    "apikey": self._service_key,
                    "Authorization": f"Bearer {self._service_key}",
                },
            )
        return self._client
