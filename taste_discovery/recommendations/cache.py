from __future__ import annotations

import time
from collections import OrderedDict
from typing import Any

from .config import DEFAULT_PIPELINE_CONFIG

_DEFAULT_MAX_SIZE = 512
_DEFAULT_TTL = 3600  # 1 hour


class TTLCache:
    """
    Bounded LRU cache whose entries also expire after ``ttl`` seconds.

    Not synchronised; concurrent writes for the same key: last one wins.
    """

    def __init__(self, max_size: int = _DEFAULT_MAX_SIZE, ttl: float = _DEFAULT_TTL) -> None:
        self.max_size = max_size
        self.ttl = ttl
        self._entries: OrderedDict[str, dict[str, Any]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry and time.monotonic() - entry["created_at"] < self.ttl:
            self._entries.move_to_end(key)
            self.hits += 1
            return entry["value"]
        if entry:
            del self._entries[key]
        self.misses += 1
        return None

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = {"value": value, "created_at": time.monotonic()}
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict:
        total = self.hits + self.misses
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / total * 100, 1) if total > 0 else 0.0,
        }

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0


explanation_cache = TTLCache(DEFAULT_PIPELINE_CONFIG.cache_max_size, DEFAULT_PIPELINE_CONFIG.cache_ttl)
generated_places_cache = TTLCache(
    DEFAULT_PIPELINE_CONFIG.cache_max_size, DEFAULT_PIPELINE_CONFIG.cache_ttl
)


def get_cache_stats() -> dict:
    return {
        "explanations": explanation_cache.stats(),
        "generated_places": generated_places_cache.stats(),
    }


def clear_cache() -> None:
    explanation_cache.clear()
    generated_places_cache.clear()
