"""
Font subset fetcher backed by the Google Fonts CSS API.

The CSS API can return a font containing only the requested characters, which
keeps downloads small. A legacy desktop browser User-Agent makes it answer
with TrueType/OpenType sources instead of WOFF2.
"""

import logging
import re
from typing import Optional

import httpx

from .errors import FontParseError
from .fetch import fetch

logger = logging.getLogger(__name__)

GOOGLE_FONTS_CSS_URL = "https://fonts.googleapis.com/css2"
LEGACY_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; U; Intel Mac OS X 10_6_8; de-at) "
    "AppleWebKit/533.21.1 (KHTML, like Gecko) Version/5.0.5 Safari/533.21.1"
)

_FONT_SRC_RE = re.compile(r"src: url\((?P<fontUrl>.+?)\) format\('(?:opentype|truetype)'\)")


def subsetText(text: str) -> str:
    """Unique characters of text, in order of first appearance."""
    return "".join(dict.fromkeys(text))


async def fetchFont(
    text: str,
    family: str,
    weight: int = 400,
    client: Optional[httpx.AsyncClient] = None,
    apiUrl: str = GOOGLE_FONTS_CSS_URL,
) -> bytes:
    """
    Fetch a font subset able to paint ``text``.

    Args:
        text: Every character that will be painted with this font
        family: Font family name, e.g. "Noto Sans JP"
        weight: Font weight
        client: Optional shared HTTP client
        apiUrl: CSS API endpoint

    Returns:
        Raw TrueType/OpenType font bytes

    Raises:
        UpstreamFetchError: CSS or font download failed
        FontParseError: CSS contained no usable font reference
    """
    params = {"family": f"{family}:wght@{weight}", "text": subsetText(text)}
    cssResponse = await fetch(apiUrl, client, params=params, headers={"User-Agent": LEGACY_USER_AGENT})

    match = _FONT_SRC_RE.search(cssResponse.text)
    if match is None:
        logger.error(f"No font source for {family}:{weight} in CSS response")
        raise FontParseError(str(cssResponse.url), cssResponse.status_code, f"Failed to parse font {family}:{weight}")

    fontUrl = match.group("fontUrl").strip("'\"")
    fontResponse = await fetch(fontUrl, client)
    logger.debug(f"Fetched font {family}:{weight} ({len(fontResponse.content)} bytes)")
    return fontResponse.content
