"""Utility modules for the schema mapping engine."""

from schemamap.utils.lru_cache import CacheStats, LRUCache
from schemamap.utils.normalized_cache import (
    NormalizedCache,
    make_cache_key,
    normalize_headers,
    normalize_payload_hash,
)

__all__ = [
    "CacheStats",
    "LRUCache",
    "NormalizedCache",
    "make_cache_key",
    "normalize_headers",
    "normalize_payload_hash",
]
