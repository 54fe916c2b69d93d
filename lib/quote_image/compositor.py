"""
Quote image compositor.

Renders a chat message into a quote card PNG: the message tree, three font
subsets and the avatar are resolved concurrently, then handed to the layout
engine together with an emoji asset callback.
"""

import asyncio
import io
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import httpx
from PIL import Image

from lib.assets import (
    DISCORD_CDN_URL,
    GOOGLE_FONTS_CSS_URL,
    TWEMOJI_BASE_URL,
    CustomEmojiLoader,
    fetchFont,
    fetchIcon,
    loadTwemoji,
)
from lib.cache import CacheInterface, DictCache, StringKeyGenerator
from lib.layout import MONO_FAMILY, PRIMARY_FAMILY, FontResource, LayoutEngine, PillowLayoutEngine
from lib.markdown import RenderContext, render_markdown
from lib.markdown.renderer import BULLET, UNKNOWN_MENTION

from .card import buildQuoteCard

logger = logging.getLogger(__name__)

# Glyphs painted by the card itself, independent of the message text
FIXED_GLYPHS = f"@{UNKNOWN_MENTION}{BULLET}0123456789."


@dataclass(frozen=True)
class QuoteRequest:
    """Everything needed to render one quote."""

    iconUrl: str
    text: str
    name: str
    handle: str
    mentionNames: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class QuoteImageConfig:
    """Canvas, font and upstream settings of the compositor."""

    width: int = 1200
    height: int = 630
    primaryFont: str = "Noto Sans JP"
    monoFont: str = "Noto Sans Mono"
    twemojiBaseUrl: str = TWEMOJI_BASE_URL
    discordCdnUrl: str = DISCORD_CDN_URL
    fontsApiUrl: str = GOOGLE_FONTS_CSS_URL

    @classmethod
    def fromDict(cls, config: Dict[str, Any]) -> "QuoteImageConfig":
        """Build from the ``[image]`` configuration section."""
        defaults = cls()
        width = int(config.get("width", defaults.width))
        height = int(config.get("height", defaults.height))
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid canvas size {width}x{height}")
        return cls(
            width=width,
            height=height,
            primaryFont=str(config.get("primary-font", defaults.primaryFont)),
            monoFont=str(config.get("mono-font", defaults.monoFont)),
            twemojiBaseUrl=str(config.get("twemoji-base-url", defaults.twemojiBaseUrl)),
            discordCdnUrl=str(config.get("discord-cdn-url", defaults.discordCdnUrl)),
            fontsApiUrl=str(config.get("fonts-api-url", defaults.fontsApiUrl)),
        )


def buildTextSeed(request: QuoteRequest) -> str:
    """Every character that may be painted, used to subset the fonts."""
    return "".join(
        [
            request.text,
            request.name,
            request.handle,
            "".join(request.mentionNames.values()),
            FIXED_GLYPHS,
        ]
    )


def cropToContent(image: Image.Image) -> Image.Image:
    """Crop an RGBA image to the bounding box of its non-transparent pixels."""
    bbox = image.getchannel("A").getbbox()
    if bbox is None:
        return image
    return image.crop(bbox)


def encodePng(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


class QuoteImageGenerator:
    """
    Generates quote images.

    The emoji cache is owned by the caller (or by the generator when none is
    given) and shared by every request made through this generator.

    Example:
        async with httpx.AsyncClient(timeout=10) as client:
            generator = QuoteImageGenerator(client)
            png = await generator.generate(
                QuoteRequest(iconUrl=avatarUrl, text="Hello <@123>", name="Alice", handle="alice",
                             mentionNames={"123": "Bob"})
            )
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        emojiCache: Optional[CacheInterface[str, str]] = None,
        engine: Optional[LayoutEngine] = None,
        config: Optional[QuoteImageConfig] = None,
    ):
        """
        Initialize the generator.

        Args:
            client: Shared HTTP client, short-lived clients are used when None
            emojiCache: Custom emoji cache, a new unbounded-TTL DictCache when None
            engine: Layout engine, PillowLayoutEngine when None
            config: Canvas and upstream settings
        """
        self.client = client
        self.config = config or QuoteImageConfig()
        self.emojiCache: CacheInterface[str, str] = (
            emojiCache if emojiCache is not None else DictCache[str, str](StringKeyGenerator(), defaultTtl=-1)
        )
        self.engine = engine or PillowLayoutEngine()
        self.emojiLoader = CustomEmojiLoader(self.emojiCache, self.client, self.config.discordCdnUrl)

    async def loadAdditionalAsset(self, code: str, segment: str) -> str:
        """Asset callback of the layout engine."""
        if code == "emoji":
            return await loadTwemoji(segment, self.client, self.config.twemojiBaseUrl)
        return segment

    async def generate(self, request: QuoteRequest) -> bytes:
        """
        Render a quote into PNG bytes.

        Raises:
            UpstreamFetchError: If the avatar, a font or an emoji can not be fetched
        """
        seed = buildTextSeed(request)
        context = RenderContext(mentionNames=request.mentionNames, loadCustomEmoji=self.emojiLoader.load)
        cfg = self.config

        content, regular, bold, mono, iconSrc = await asyncio.gather(
            render_markdown(request.text, context),
            fetchFont(seed, cfg.primaryFont, 400, self.client, cfg.fontsApiUrl),
            fetchFont(seed, cfg.primaryFont, 700, self.client, cfg.fontsApiUrl),
            fetchFont(seed, cfg.monoFont, 400, self.client, cfg.fontsApiUrl),
            fetchIcon(request.iconUrl, self.client),
        )
        fonts = [
            FontResource(PRIMARY_FAMILY, regular, 400),
            FontResource(PRIMARY_FAMILY, bold, 700),
            FontResource(MONO_FAMILY, mono, 400),
        ]

        card = buildQuoteCard(iconSrc, content, request.name, request.handle)
        image = await self.engine.render(card, cfg.width, cfg.height, fonts, self.loadAdditionalAsset)
        cropped = cropToContent(image)
        logger.debug(f"Rendered quote for {request.handle}: {cropped.width}x{cropped.height}")
        return encodePng(cropped)


async def generate_quote_image(
    request: QuoteRequest,
    client: Optional[httpx.AsyncClient] = None,
    emojiCache: Optional[CacheInterface[str, str]] = None,
    config: Optional[QuoteImageConfig] = None,
) -> bytes:
    """
    Render a quote into PNG bytes with the default layout engine.

    Args:
        request: Quote to render
        client: Optional shared HTTP client
        emojiCache: Optional emoji cache to reuse across calls
        config: Optional compositor settings

    Returns:
        PNG bytes
    """
    return await QuoteImageGenerator(client, emojiCache, config=config).generate(request)
