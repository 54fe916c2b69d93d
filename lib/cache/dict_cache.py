"""
Dictionary-based cache implementation for lib.cache.

Entries are kept in memory together with the time they were stored. Expired
entries are dropped lazily on access and when statistics are requested; when
the size limit is reached the oldest entries are evicted first.
"""

import logging
import threading
import time
from typing import Any, Dict, Optional, Tuple

from .interface import CacheInterface
from .types import K, KeyGenerator, V

logger = logging.getLogger(__name__)


class DictCache(CacheInterface[K, V]):
    """
    Thread-safe in-memory cache with TTL and size limit.

    TTL semantics (both for ``defaultTtl`` and the per-call override):
    negative means entries never expire, zero means every entry is already
    expired.

    Example:
        >>> cache = DictCache[str, str](keyGenerator=StringKeyGenerator(), defaultTtl=-1, maxSize=1000)
        >>> await cache.set("42s", "data:image/png;base64,...")
        >>> await cache.get("42s")
        'data:image/png;base64,...'
    """

    def __init__(self, keyGenerator: KeyGenerator[K], defaultTtl: int = 3600, maxSize: Optional[int] = 1000):
        """
        Initialize the cache.

        Args:
            keyGenerator: Converts keys into the stored string keys
            defaultTtl: Default TTL in seconds
            maxSize: Maximum number of entries, None for unlimited
        """
        self._keyGenerator = keyGenerator
        self._defaultTtl = defaultTtl
        self._maxSize = maxSize
        self._store: Dict[str, Tuple[V, float]] = {}
        self._lock = threading.RLock()

    def _isExpired(self, timestamp: float, ttl: Optional[int] = None) -> bool:
        effectiveTtl = self._defaultTtl if ttl is None else ttl
        if effectiveTtl < 0:
            return False
        return time.time() - timestamp >= effectiveTtl

    def _cleanupExpired(self) -> None:
        """Remove entries expired according to the default TTL."""
        with self._lock:
            expiredKeys = [key for key, (_, timestamp) in self._store.items() if self._isExpired(timestamp)]
            for key in expiredKeys:
                del self._store[key]

        if expiredKeys:
            logger.debug(f"Cleaned up {len(expiredKeys)} expired entries")

    def _evictOldest(self) -> None:
        """Drop the oldest entries until there is room for one more."""
        if self._maxSize is None:
            return
        while self._store and len(self._store) >= self._maxSize:
            oldestKey = min(self._store, key=lambda key: self._store[key][1])
            del self._store[oldestKey]
            logger.debug(f"Evicted cache entry: {oldestKey}")

    async def get(self, key: K, ttl: Optional[int] = None) -> Optional[V]:
        try:
            cacheKey = self._keyGenerator.generateKey(key)
        except Exception as e:
            logger.error(f"Failed to generate cache key for {key!r}: {e}")
            return None

        with self._lock:
            entry = self._store.get(cacheKey)
            if entry is None:
                logger.debug(f"Cache miss for key: {cacheKey}")
                return None

            value, timestamp = entry
            if self._isExpired(timestamp, ttl):
                del self._store[cacheKey]
                logger.debug(f"Removed expired entry: {cacheKey}")
                return None

        logger.debug(f"Cache hit for key: {cacheKey}")
        return value

    async def set(self, key: K, value: V) -> bool:
        try:
            cacheKey = self._keyGenerator.generateKey(key)
        except Exception as e:
            logger.error(f"Failed to generate cache key for {key!r}: {e}")
            return False

        with self._lock:
            if cacheKey not in self._store:
                self._evictOldest()
            self._store[cacheKey] = (value, time.time())

        logger.debug(f"Stored cache entry: {cacheKey}")
        return True

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def getStats(self) -> Dict[str, Any]:
        self._cleanupExpired()
        with self._lock:
            return {
                "entries": len(self._store),
                "maxSize": self._maxSize,
                "defaultTtl": self._defaultTtl,
                "threadSafe": True,
            }
