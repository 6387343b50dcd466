"""Product persistence through the hosted backend."""

from .base import ProductStore, listing_record
from .factory import build_store
from .memory import MemoryProductStore
from .supabase import SupabaseProductStore

__all__ = [
    "ProductStore",
    "MemoryProductStore",
    "SupabaseProductStore",
    "build_store",
    "listing_record",
]
