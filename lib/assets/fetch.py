"""
Shared HTTP helpers for the asset resolvers.
"""

import base64
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Mapping, Optional

import httpx

from .errors import UpstreamFetchError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


@asynccontextmanager
async def clientScope(client: Optional[httpx.AsyncClient] = None) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the given client, or a short-lived one closed on exit."""
    if client is not None:
        yield client
        return

    async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT, follow_redirects=True) as session:
        yield session


async def fetch(
    url: str,
    client: Optional[httpx.AsyncClient] = None,
    *,
    params: Optional[Mapping[str, str]] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> httpx.Response:
    """
    GET a URL, failing on any network error or non-success status.

    Raises:
        UpstreamFetchError: Request failed or returned a non-2xx status
    """
    logger.debug(f"Fetching {url}")
    try:
        async with clientScope(client) as session:
            response = await session.get(url, params=params, headers=headers)
    except httpx.HTTPError as e:
        raise UpstreamFetchError(url, message=f"Failed to fetch {url}: {e}") from e

    if not response.is_success:
        raise UpstreamFetchError(str(response.url), response.status_code)

    return response


def encodeDataUri(content: bytes, contentType: str) -> str:
    """Encode bytes as a base64 data URI."""
    return f"data:{contentType};base64,{base64.b64encode(content).decode('ascii')}"


def responseToDataUri(response: httpx.Response, defaultContentType: str = "application/octet-stream") -> str:
    """Encode a response body as a data URI tagged with its content type."""
    contentType = response.headers.get("content-type", defaultContentType).split(";")[0].strip()
    return encodeDataUri(response.content, contentType or defaultContentType)
