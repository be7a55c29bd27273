"""Header-normalizing cache layer for column mapping results.

Requests whose headers differ only by order, case or surrounding whitespace
produce the same key, so a schema-equivalent paste never triggers a second
paid inference call.
"""

import hashlib
import json
import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from schemamap.utils.lru_cache import CacheStats, LRUCache

logger = logging.getLogger(__name__)


def normalize_headers(headers: List[str]) -> List[str]:
    """
    Return a sorted, trimmed, lowercased copy of headers.

    The input list is never mutated.
    """
    return sorted(str(h).strip().lower() for h in headers)


def normalize_payload_hash(payload: Dict[str, Any]) -> str:
    """
    Produce a stable SHA-256 hash for a request payload.

    The "headers" entry is normalized before hashing; dict keys are sorted so
    the hash only depends on content.

    Args:
        payload: JSON-serializable request payload with a "headers" list

    Returns:
        Hex digest
    """
    normalized = dict(payload)
    normalized["headers"] = normalize_headers(payload.get("headers", []))
    data = json.dumps(normalized, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def make_cache_key(
    operation: str,
    model: str,
    prompt_version: str,
    schema_version: str,
    payload: Dict[str, Any],
) -> str:
    """Build a cache key of the form op:model:prompt_version:schema_version:hash."""
    payload_hash = normalize_payload_hash(payload)
    return f"{operation}:{model}:{prompt_version}:{schema_version}:{payload_hash}"


class NormalizedCache:
    """Cache layer that tracks its own hit/miss counters over an inner bounded cache.

    Any object exposing get/set/clear/stats like LRUCache can be wrapped.
    """

    level = "L3"

    def __init__(self, inner: Optional[LRUCache] = None):
        self.inner = inner if inner is not None else LRUCache()
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

    def key_for(
        self,
        payload: Dict[str, Any],
        operation: str = "map_columns",
        model: str = "",
        prompt_version: str = "",
        schema_version: str = "",
    ) -> str:
        """Build the normalized key for a request payload."""
        return make_cache_key(operation, model, prompt_version, schema_version, payload)

    def get(self, key: str) -> Tuple[Any, bool]:
        """Look up a key, updating hit/miss counters."""
        value, hit = self.inner.get(key)
        with self._lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1
        return value, hit

    def set(self, key: str, value: Any) -> None:
        self.inner.set(key, value)

    def clear(self) -> None:
        """Remove all entries and reset counters."""
        self.inner.clear()
        with self._lock:
            self._hits = 0
            self._misses = 0

    def stats(self) -> CacheStats:
        with self._lock:
            hits, misses = self._hits, self._misses
        inner = self.inner.stats()
        return CacheStats(
            hits=hits,
            misses=misses,
            size=inner.size,
            max_size=inner.max_size,
            level=self.level,
        )
