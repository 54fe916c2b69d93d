"""
Generic (Unicode) emoji support: grapheme splitting, pictographic detection
and Twemoji image lookup.
"""

import logging
from typing import List, Optional

import httpx
import regex

from .fetch import fetch, responseToDataUri

logger = logging.getLogger(__name__)

TWEMOJI_BASE_URL = "https://cdn.jsdelivr.net/gh/jdecked/twemoji@latest/assets/72x72"

ZWJ = "\u200d"
VARIATION_SELECTOR_16 = "\ufe0f"

_GRAPHEME_RE = regex.compile(r"\X")
_PICTOGRAPHIC_RE = regex.compile(r"\p{Extended_Pictographic}|\p{Emoji_Presentation}|\p{Regional_Indicator}")


def splitGraphemes(text: str) -> List[str]:
    """Split text into extended grapheme clusters."""
    return _GRAPHEME_RE.findall(text)


def isPictographic(cluster: str) -> bool:
    """Check whether a grapheme cluster should be painted as an emoji image."""
    return bool(_PICTOGRAPHIC_RE.search(cluster))


def getIconCode(cluster: str) -> str:
    """
    Derive the Twemoji file key of a grapheme cluster.

    Variation selectors are stripped from stand-alone emoji, joined (ZWJ)
    sequences keep every code point.

    Example:
        >>> getIconCode("\\u2764\\ufe0f")
        '2764'
        >>> getIconCode("\\U0001f469\\u200d\\u2764\\ufe0f\\u200d\\U0001f468")
        '1f469-200d-2764-fe0f-200d-1f468'
    """
    if ZWJ not in cluster:
        cluster = cluster.replace(VARIATION_SELECTOR_16, "")
    return "-".join(f"{ord(char):x}" for char in cluster)


async def loadTwemoji(
    cluster: str,
    client: Optional[httpx.AsyncClient] = None,
    baseUrl: str = TWEMOJI_BASE_URL,
) -> str:
    """
    Fetch the Twemoji image of a grapheme cluster as a data URI.

    Raises:
        UpstreamFetchError: On network failure or unknown emoji
    """
    url = f"{baseUrl.rstrip('/')}/{getIconCode(cluster)}.png"
    response = await fetch(url, client)
    return responseToDataUri(response, "image/png")
