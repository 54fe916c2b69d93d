"""
Abstract cache interface for lib.cache.

Every cache implementation follows the same small async API so callers
(for example the custom emoji loader) can receive any of them by reference.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Optional

from .types import K, V


class CacheInterface(ABC, Generic[K, V]):
    """
    Generic cache interface for any key-value storage.

    Type Parameters:
        K: The key type
        V: The value type

    Example:
        >>> cache = DictCache[str, str](keyGenerator=StringKeyGenerator(), defaultTtl=-1)
        >>> await cache.set("42s", "data:image/png;base64,...")
        >>> dataUri = await cache.get("42s")
        >>> stats = cache.getStats()
    """

    @abstractmethod
    async def get(self, key: K, ttl: Optional[int] = None) -> Optional[V]:
        """
        Get cached value by key.

        Args:
            key: The cache key to retrieve
            ttl: Optional TTL override in seconds. Negative means no
                 expiration, zero means everything is expired.
                 If None, the cache's default TTL is used.

        Returns:
            Optional[V]: The cached value if found and not expired, None otherwise
        """
        pass

    @abstractmethod
    async def set(self, key: K, value: V) -> bool:
        """
        Store value in cache.

        Args:
            key: The cache key to store the value under
            value: The value to cache

        Returns:
            bool: True if the value was successfully stored, False otherwise
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all cached data."""
        pass

    @abstractmethod
    def getStats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict[str, Any]: Implementation specific statistics, such as
            entry count, size limit and default TTL
        """
        pass
