"""
Discord custom emoji loader.
"""

import logging
from typing import Optional

import httpx

from lib.cache import CacheInterface

from .errors import UpstreamFetchError
from .fetch import fetch, responseToDataUri

logger = logging.getLogger(__name__)

DISCORD_CDN_URL = "https://cdn.discordapp.com"


def emojiCacheKey(emojiId: str, animated: bool) -> str:
    """Cache key of an emoji variant: id followed by ``a`` (animated) or ``s`` (static)."""
    return f"{emojiId}{'a' if animated else 's'}"


class CustomEmojiLoader:
    """
    Resolves custom emoji into data URIs.

    The cache is passed in by reference so several generators (and tests) can
    share or isolate it. Concurrent misses for the same key are not coalesced:
    both requests fetch and store the same value.

    Example:
        cache = DictCache[str, str](keyGenerator=StringKeyGenerator(), defaultTtl=-1)
        loader = CustomEmojiLoader(cache, client)
        dataUri = await loader.load("1234567890", animated=True)
    """

    def __init__(
        self,
        cache: CacheInterface[str, str],
        client: Optional[httpx.AsyncClient] = None,
        cdnUrl: str = DISCORD_CDN_URL,
    ):
        """
        Initialize the loader.

        Args:
            cache: Emoji cache, keyed by ``emojiCacheKey``
            client: Optional shared HTTP client
            cdnUrl: Discord CDN base URL
        """
        self.cache = cache
        self.client = client
        self.cdnUrl = cdnUrl.rstrip("/")

    def emojiUrl(self, emojiId: str, animated: bool) -> str:
        return f"{self.cdnUrl}/emojis/{emojiId}.{'gif' if animated else 'png'}"

    async def load(self, emojiId: str, animated: bool = False) -> str:
        """
        Get emoji image as a data URI.

        Animated emoji are fetched as GIF first; if that fails the static PNG
        is tried once.

        Raises:
            UpstreamFetchError: If the static image can not be fetched either
        """
        cacheKey = emojiCacheKey(emojiId, animated)
        cached = await self.cache.get(cacheKey)
        if cached is not None:
            logger.debug(f"Emoji cache hit: {cacheKey}")
            return cached

        response: Optional[httpx.Response] = None
        if animated:
            try:
                response = await fetch(self.emojiUrl(emojiId, True), self.client)
            except UpstreamFetchError as e:
                logger.warning(f"Animated emoji {emojiId} unavailable ({e}), falling back to static image")

        if response is None:
            try:
                response = await fetch(self.emojiUrl(emojiId, False), self.client)
            except UpstreamFetchError as e:
                logger.error(f"Failed to fetch emoji {emojiId}: {e}")
                raise

        dataUri = responseToDataUri(response, "image/png")
        await self.cache.set(cacheKey, dataUri)
        return dataUri

    async def __call__(self, emojiId: str, animated: bool) -> str:
        return await self.load(emojiId, animated)
