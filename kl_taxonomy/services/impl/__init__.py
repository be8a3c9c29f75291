"""Services implementation package."""

from .cache_service import CacheEntry, CacheStore
from .persistence import JsonFilePersistence, RedisPersistence, build_persistence
from .session_provider import YamlSessionDirectory, build_session_context
from .taxonomy_store import TaxonomyStore

__all__ = [
    "CacheEntry",
    "CacheStore",
    "JsonFilePersistence",
    "RedisPersistence",
    "build_persistence",
    "YamlSessionDirectory",
    "build_session_context",
    "TaxonomyStore",
]
