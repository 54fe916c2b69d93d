"""
Quote image generation: turns a chat message into a quote card PNG.
"""

from .card import buildQuoteCard
from .compositor import (
    QuoteImageConfig,
    QuoteImageGenerator,
    QuoteRequest,
    buildTextSeed,
    cropToContent,
    generate_quote_image,
)

__all__ = [
    "QuoteImageConfig",
    "QuoteImageGenerator",
    "QuoteRequest",
    "buildQuoteCard",
    "buildTextSeed",
    "cropToContent",
    "generate_quote_image",
]
