"""
Tests for the DictCache implementation.
"""

import asyncio
from typing import Any
from unittest.mock import patch

import pytest

from lib.cache.dict_cache import DictCache
from lib.cache.key_generator import StringKeyGenerator

PNG_URI = "data:image/png;base64,iVBORw0KGgo="
GIF_URI = "data:image/gif;base64,R0lGODlh"


class TestDictCacheBasic:
    """Test basic cache operations."""

    def test_cache_initialization(self):
        """Defaults match the documented ones."""
        cache = DictCache[str, str](keyGenerator=StringKeyGenerator())

        assert cache._keyGenerator is not None
        assert cache._defaultTtl == 3600
        assert cache._maxSize == 1000
        assert cache._lock is not None

    def test_cache_initialization_custom_params(self):
        keyGen = StringKeyGenerator()
        cache = DictCache[str, str](keyGenerator=keyGen, defaultTtl=-1, maxSize=500)

        assert cache._keyGenerator == keyGen
        assert cache._defaultTtl == -1
        assert cache._maxSize == 500

    @pytest.mark.asyncio
    async def test_basic_set_and_get(self):
        cache = DictCache[str, str](keyGenerator=StringKeyGenerator())

        assert await cache.set("42s", PNG_URI) is True
        assert await cache.get("42s") == PNG_URI

    @pytest.mark.asyncio
    async def test_animation_flag_keys_are_distinct(self):
        """Animated and static variants of one emoji are separate entries."""
        cache = DictCache[str, str](keyGenerator=StringKeyGenerator())

        await cache.set("42a", GIF_URI)
        await cache.set("42s", PNG_URI)

        assert await cache.get("42a") == GIF_URI
        assert await cache.get("42s") == PNG_URI

    @pytest.mark.asyncio
    async def test_get_nonexistent_key(self):
        cache = DictCache[str, str](keyGenerator=StringKeyGenerator())

        assert await cache.get("nonexistent") is None

    @pytest.mark.asyncio
    async def test_clear_cache(self):
        cache = DictCache[str, str](keyGenerator=StringKeyGenerator())
        await cache.set("1s", PNG_URI)
        await cache.set("2s", PNG_URI)

        cache.clear()

        assert await cache.get("1s") is None
        assert await cache.get("2s") is None

    @pytest.mark.asyncio
    async def test_get_stats(self):
        cache = DictCache[str, str](keyGenerator=StringKeyGenerator())

        stats = cache.getStats()
        assert stats["entries"] == 0
        assert stats["maxSize"] == 1000
        assert stats["defaultTtl"] == 3600
        assert stats["threadSafe"] is True

        await cache.set("42s", PNG_URI)
        assert cache.getStats()["entries"] == 1


class TestDictCacheTTL:
    """Test TTL handling."""

    @pytest.mark.asyncio
    async def test_ttl_expiration(self):
        cache = DictCache[str, str](keyGenerator=StringKeyGenerator(), defaultTtl=1)

        with patch("lib.cache.dict_cache.time.time", return_value=1000.0) as clock:
            await cache.set("42s", PNG_URI)

            clock.return_value = 1000.9
            assert await cache.get("42s") == PNG_URI

            clock.return_value = 1001.0
            assert await cache.get("42s") is None

    @pytest.mark.asyncio
    async def test_negative_ttl_never_expires(self):
        cache = DictCache[str, str](keyGenerator=StringKeyGenerator(), defaultTtl=-1)

        with patch("lib.cache.dict_cache.time.time", return_value=1000.0) as clock:
            await cache.set("42s", PNG_URI)

            clock.return_value = 1000.0 + 365 * 24 * 3600
            assert await cache.get("42s") == PNG_URI
        assert cache.getStats()["entries"] == 1

    @pytest.mark.asyncio
    async def test_zero_ttl_override_expires_and_removes(self):
        cache = DictCache[str, str](keyGenerator=StringKeyGenerator(), defaultTtl=10)
        await cache.set("1s", PNG_URI)
        await cache.set("2s", PNG_URI)

        assert await cache.get("2s", ttl=0) is None
        # Expired entry is removed, even a non-expiring lookup misses now
        assert await cache.get("2s", ttl=-1) is None
        assert await cache.get("1s", ttl=-1) == PNG_URI

    @pytest.mark.asyncio
    async def test_stats_cleanup_drops_expired(self):
        cache = DictCache[str, str](keyGenerator=StringKeyGenerator(), defaultTtl=0)
        for i in range(10):
            await cache.set(f"{i}s", PNG_URI)

        assert cache.getStats()["entries"] == 0


class TestDictCacheSize:
    """Test size limits and eviction."""

    @pytest.mark.asyncio
    async def test_size_limit_evicts_oldest(self):
        cache = DictCache[str, str](keyGenerator=StringKeyGenerator(), maxSize=3)
        await cache.set("1s", PNG_URI)
        await cache.set("2s", PNG_URI)
        await cache.set("3s", PNG_URI)

        await cache.set("4s", PNG_URI)

        assert await cache.get("1s") is None
        assert await cache.get("2s") == PNG_URI
        assert await cache.get("3s") == PNG_URI
        assert await cache.get("4s") == PNG_URI

    @pytest.mark.asyncio
    async def test_overwrite_does_not_evict(self):
        cache = DictCache[str, str](keyGenerator=StringKeyGenerator(), maxSize=2)
        await cache.set("1s", PNG_URI)
        await cache.set("2s", PNG_URI)

        await cache.set("2s", GIF_URI)

        assert await cache.get("1s") == PNG_URI
        assert await cache.get("2s") == GIF_URI

    @pytest.mark.asyncio
    async def test_unlimited_size(self):
        cache = DictCache[str, str](keyGenerator=StringKeyGenerator(), maxSize=None)
        for i in range(50):
            await cache.set(f"{i}s", PNG_URI)

        assert cache.getStats()["entries"] == 50


class TestDictCacheConcurrency:
    """Test concurrent use from several tasks."""

    @pytest.mark.asyncio
    async def test_concurrent_writers_converge(self):
        """Duplicate writes of one key leave a single entry with the same value."""
        cache = DictCache[str, str](keyGenerator=StringKeyGenerator())

        async def writer():
            await asyncio.sleep(0)
            await cache.set("42a", GIF_URI)

        await asyncio.gather(*(writer() for _ in range(5)))

        assert await cache.get("42a") == GIF_URI
        assert cache.getStats()["entries"] == 1


class TestDictCacheErrorHandling:
    """Test error handling."""

    @pytest.mark.asyncio
    async def test_key_generator_exception_handling(self):
        class FailingKeyGenerator:
            def generateKey(self, obj: Any) -> str:
                raise ValueError("Key generation failed")

        cache = DictCache[str, str](keyGenerator=FailingKeyGenerator())

        assert await cache.set("key", "value") is False
        assert await cache.get("key") is None

    @pytest.mark.asyncio
    async def test_non_string_key_rejected(self):
        cache = DictCache[Any, str](keyGenerator=StringKeyGenerator())

        assert await cache.set(42, PNG_URI) is False
        assert await cache.get(42) is None
