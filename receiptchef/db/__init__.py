"""SQLite-backed classification cache."""

from .canon_cache import SQLiteCanonCache
from .schema import ensure_schema
from .store import CacheStore, MemoryCanonCache

__all__ = [
    "CacheStore",
    "MemoryCanonCache",
    "SQLiteCanonCache",
    "ensure_schema",
]
