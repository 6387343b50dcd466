from __future__ import annotations

from ..settings import BackendSettings
from .base import ProductStore
from .memory import MemoryProductStore
from .supabase import SupabaseProductStore


def build_store(cfg: BackendSettings) -> ProductStore:
    provider_name = (cfg.provider or "memory").strip().lower()
    if provider_name in {"memory", "mock"}:
        return MemoryProductStore()
    if provider_name == "supabase":
        if not cfg.url or not cfg.service_key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required")
        return SupabaseProductStore(base_url=cfg.url, service_key=cfg.service_key, timeout=cfg.timeout)
    raise RuntimeError(f"unsupported backend provider: {cfg.provider}")
