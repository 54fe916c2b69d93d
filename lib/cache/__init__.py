"""
lib.cache - Generic cache library for Quotebot

Core Components:
- CacheInterface: Abstract base class for all cache implementations
- KeyGenerator: Protocol for generating cache keys from objects
- DictCache: Thread-safe dictionary-based cache with TTL and size limit
- NullCache: No-op cache used when caching is disabled

Example Usage:
    >>> from lib.cache import DictCache, StringKeyGenerator
    >>>
    >>> cache = DictCache[str, str](
    ...     keyGenerator=StringKeyGenerator(),
    ...     defaultTtl=-1,
    ...     maxSize=1000
    ... )
    >>> await cache.set("1234567890a", "data:image/gif;base64,...")
    >>> dataUri = await cache.get("1234567890a")
"""

from .dict_cache import DictCache
from .interface import CacheInterface
from .key_generator import StringKeyGenerator
from .null_cache import NullCache
from .types import K, KeyGenerator, T, V

__version__ = "0.1.0"

__all__ = [
    # Core types
    "KeyGenerator",
    "K",
    "V",
    "T",
    # Interfaces
    "CacheInterface",
    # Implementations
    "DictCache",
    "NullCache",
    # Key generators
    "StringKeyGenerator",
]
