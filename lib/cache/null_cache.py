"""
Null cache implementation for lib.cache.

Used when emoji caching is disabled in the configuration.
"""

from typing import Any, Dict, Optional

from .interface import CacheInterface
from .types import K, V


class NullCache(CacheInterface[K, V]):
    """No-op cache that never stores anything."""

    async def get(self, key: K, ttl: Optional[int] = None) -> Optional[V]:
        """Always return None (cache miss)."""
        return None

    async def set(self, key: K, value: V) -> bool:
        """Do nothing, but pretend to succeed."""
        return True

    def clear(self) -> None:
        """Nothing to clear."""
        pass

    def getStats(self) -> Dict[str, Any]:
        """Report that caching is disabled."""
        return {"enabled": False}
