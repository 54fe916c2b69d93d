"""
Asset resolvers: avatar icons, font subsets, Discord custom emoji and
Twemoji images. Everything is returned as data URIs (fonts as raw bytes).
"""

from .emoji import DISCORD_CDN_URL, CustomEmojiLoader, emojiCacheKey
from .errors import FontParseError, UpstreamFetchError
from .fetch import encodeDataUri
from .font import GOOGLE_FONTS_CSS_URL, fetchFont
from .icon import fetchIcon
from .twemoji import TWEMOJI_BASE_URL, getIconCode, isPictographic, loadTwemoji, splitGraphemes

__all__ = [
    "CustomEmojiLoader",
    "emojiCacheKey",
    "DISCORD_CDN_URL",
    "UpstreamFetchError",
    "FontParseError",
    "encodeDataUri",
    "fetchFont",
    "GOOGLE_FONTS_CSS_URL",
    "fetchIcon",
    "TWEMOJI_BASE_URL",
    "getIconCode",
    "isPictographic",
    "loadTwemoji",
    "splitGraphemes",
]
