"""
Avatar icon fetcher.
"""

import logging
from typing import Optional

import httpx

from .fetch import fetch, responseToDataUri

logger = logging.getLogger(__name__)


async def fetchIcon(url: str, client: Optional[httpx.AsyncClient] = None) -> str:
    """
    Download an icon and return it as a data URI.

    Args:
        url: Icon (avatar) URL
        client: Optional shared HTTP client

    Returns:
        ``data:<content-type>;base64,<bytes>``

    Raises:
        UpstreamFetchError: On network failure or non-success status
    """
    response = await fetch(url, client)
    logger.debug(f"Fetched icon {url}: {len(response.content)} bytes")
    return responseToDataUri(response)
