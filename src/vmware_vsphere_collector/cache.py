"""
Per-cycle caching for the vSphere collector.

A CycleCache lives for exactly one collection cycle. Each key is loaded at
most once; nothing expires, and clear() discards everything.
"""

import threading
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)

_MISSING = object()


class CycleCache:
    """Thread-safe load-once cache scoped to a single collection cycle."""

    def __init__(self, name: str):
        self.name = name
        self.cache: Dict[Hashable, Any] = {}
        self.lock = threading.RLock()
        self.stats = {
            'hits': 0,
            'misses': 0,
            'clears': 0
        }

    def get(self, key: Hashable) -> Optional[Any]:
        """Get value from cache."""
        with self.lock:
            return self.cache.get(key)

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        """Return the cached value for key, calling loader on first access."""
        with self.lock:
            value = self.cache.get(key, _MISSING)
            if value is not _MISSING:
                self.stats['hits'] += 1
                return value

            self.stats['misses'] += 1
            value = loader()
            self.cache[key] = value
            logger.debug("Cache populated", cache=self.name, key=str(key))
            return value

    def items(self) -> List[Tuple[Hashable, Any]]:
        """Snapshot of the loaded entries."""
        with self.lock:
            return list(self.cache.items())

    def __contains__(self, key: Hashable) -> bool:
        with self.lock:
            return key in self.cache

    def clear(self) -> None:
        """Clear all cache entries."""
        with self.lock:
            self.cache.clear()
            self.stats['clears'] += 1

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self.lock:
            total_requests = self.stats['hits'] + self.stats['misses']
            hit_rate = (self.stats['hits'] / total_requests * 100) if total_requests > 0 else 0

            return {
                **self.stats,
                'size': len(self.cache),
                'hit_rate': round(hit_rate, 2),
                'total_requests': total_requests
            }
