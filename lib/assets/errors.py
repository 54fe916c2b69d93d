"""
Errors raised by the asset resolvers.
"""

from typing import Optional


class UpstreamFetchError(Exception):
    """Failed to retrieve an icon, font or emoji from an upstream service."""

    def __init__(self, url: str, status: Optional[int] = None, message: Optional[str] = None):
        self.url = url
        self.status = status
        if message is None:
            message = f"Failed to fetch {url}" if status is None else f"Failed to fetch {url}: HTTP {status}"
        super().__init__(message)


class FontParseError(UpstreamFetchError):
    """Font description did not contain a usable font reference."""
