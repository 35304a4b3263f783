"""SQLite storage for resolved product records."""

from .product_cache import ProductCacheDB
from .schema import ensure_schema

__all__ = [
    "ProductCacheDB",
    "ensure_schema",
]
