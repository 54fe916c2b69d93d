"""
Tests for the Discord custom emoji loader.
"""

import os
import sys
from typing import Dict, List

import httpx
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from lib.assets.emoji import CustomEmojiLoader, emojiCacheKey  # noqa: E402
from lib.assets.errors import UpstreamFetchError  # noqa: E402
from lib.assets.fetch import encodeDataUri  # noqa: E402
from lib.cache import DictCache, NullCache, StringKeyGenerator  # noqa: E402

GIF_BYTES = b"GIF89a-fake"
PNG_BYTES = b"\x89PNG-fake"


class FakeCdn:
    """Discord CDN stand-in answering with configured statuses"""

    def __init__(self, statuses: Dict[str, int]):
        self.statuses = statuses
        self.requests: List[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(path)
        status = self.statuses.get(path, 404)
        if status != 200:
            return httpx.Response(status)
        if path.endswith(".gif"):
            return httpx.Response(200, content=GIF_BYTES, headers={"content-type": "image/gif"})
        return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})


@pytest.fixture
def cache():
    """Fresh emoji cache"""
    return DictCache[str, str](keyGenerator=StringKeyGenerator(), defaultTtl=-1)


class TestCustomEmojiLoader:
    """Test suite for CustomEmojiLoader"""

    def test_cache_key(self):
        """Variant suffix distinguishes animated and static"""
        assert emojiCacheKey("42", True) == "42a"
        assert emojiCacheKey("42", False) == "42s"

    def test_emoji_url(self, cache):
        """CDN URLs use gif for animated and png for static emoji"""
        loader = CustomEmojiLoader(cache, cdnUrl="https://cdn.example.com/")
        assert loader.emojiUrl("42", True) == "https://cdn.example.com/emojis/42.gif"
        assert loader.emojiUrl("42", False) == "https://cdn.example.com/emojis/42.png"

    @pytest.mark.asyncio
    async def test_static_emoji(self, cache):
        """Static emoji go straight to the png and are cached"""
        cdn = FakeCdn({"/emojis/42.png": 200})

        async with httpx.AsyncClient(transport=httpx.MockTransport(cdn.handler)) as client:
            loader = CustomEmojiLoader(cache, client)
            result = await loader.load("42", False)

        assert result == encodeDataUri(PNG_BYTES, "image/png")
        assert cdn.requests == ["/emojis/42.png"]
        assert await cache.get("42s") == result

    @pytest.mark.asyncio
    async def test_animated_emoji(self, cache):
        """Animated emoji use the gif when available"""
        cdn = FakeCdn({"/emojis/43.gif": 200, "/emojis/43.png": 200})

        async with httpx.AsyncClient(transport=httpx.MockTransport(cdn.handler)) as client:
            result = await CustomEmojiLoader(cache, client).load("43", True)

        assert result == encodeDataUri(GIF_BYTES, "image/gif")
        assert cdn.requests == ["/emojis/43.gif"]
        assert await cache.get("43a") == result

    @pytest.mark.asyncio
    async def test_cache_hit_makes_no_request(self, cache):
        """Cached emoji are returned without touching the network"""
        cdn = FakeCdn({})
        await cache.set("42s", "data:image/png;base64,cached")

        async with httpx.AsyncClient(transport=httpx.MockTransport(cdn.handler)) as client:
            result = await CustomEmojiLoader(cache, client).load("42", False)

        assert result == "data:image/png;base64,cached"
        assert cdn.requests == []

    @pytest.mark.asyncio
    async def test_second_load_uses_cache(self, cache):
        """Only the first load fetches"""
        cdn = FakeCdn({"/emojis/42.png": 200})

        async with httpx.AsyncClient(transport=httpx.MockTransport(cdn.handler)) as client:
            loader = CustomEmojiLoader(cache, client)
            first = await loader.load("42", False)
            second = await loader("42", False)

        assert first == second
        assert cdn.requests == ["/emojis/42.png"]

    @pytest.mark.asyncio
    async def test_animated_falls_back_to_static_once(self, cache):
        """A failing gif is retried exactly once as png"""
        cdn = FakeCdn({"/emojis/43.gif": 404, "/emojis/43.png": 200})

        async with httpx.AsyncClient(transport=httpx.MockTransport(cdn.handler)) as client:
            result = await CustomEmojiLoader(cache, client).load("43", True)

        assert result == encodeDataUri(PNG_BYTES, "image/png")
        assert cdn.requests == ["/emojis/43.gif", "/emojis/43.png"]
        assert await cache.get("43a") == result

    @pytest.mark.asyncio
    async def test_double_failure_raises(self, cache):
        """Both variants failing raises and caches nothing"""
        cdn = FakeCdn({"/emojis/43.gif": 500, "/emojis/43.png": 404})

        async with httpx.AsyncClient(transport=httpx.MockTransport(cdn.handler)) as client:
            with pytest.raises(UpstreamFetchError) as excInfo:
                await CustomEmojiLoader(cache, client).load("43", True)

        assert excInfo.value.status == 404
        assert cdn.requests == ["/emojis/43.gif", "/emojis/43.png"]
        assert await cache.get("43a") is None

    @pytest.mark.asyncio
    async def test_static_failure_is_not_retried(self, cache):
        """Static emoji have no fallback"""
        cdn = FakeCdn({"/emojis/42.png": 404})

        async with httpx.AsyncClient(transport=httpx.MockTransport(cdn.handler)) as client:
            with pytest.raises(UpstreamFetchError):
                await CustomEmojiLoader(cache, client).load("42", False)

        assert cdn.requests == ["/emojis/42.png"]

    @pytest.mark.asyncio
    async def test_disabled_cache_always_fetches(self):
        """NullCache turns caching off"""
        cdn = FakeCdn({"/emojis/42.png": 200})

        async with httpx.AsyncClient(transport=httpx.MockTransport(cdn.handler)) as client:
            loader = CustomEmojiLoader(NullCache[str, str](), client)
            await loader.load("42", False)
            await loader.load("42", False)

        assert cdn.requests == ["/emojis/42.png", "/emojis/42.png"]
