"""
Tests for the Pillow layout engine.

No font resources are registered, so text is painted with Pillow's built-in
font.
"""

import base64
import io
import os
import sys
from unittest.mock import AsyncMock

import pytest
from PIL import Image, ImageFont

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from lib.layout import (  # noqa: E402
    Box,
    BoxKind,
    FontResource,
    ImageNode,
    MONO_FAMILY,
    PRIMARY_FAMILY,
    PillowLayoutEngine,
    Style,
    TextRun,
    collectEmojiClusters,
    resolveLength,
)
from lib.layout.fonts import FontBook  # noqa: E402

GRIN = "\U0001f600"
HEART = "\u2764\ufe0f"


def pngDataUri(size=(8, 8), color=(0, 0, 255, 255)) -> str:
    """Solid color PNG as data URI"""
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


class RecordingFontBook(FontBook):
    """Built-in font for every face; mono faces draw no CJK and every choice is recorded"""

    def __init__(self, fonts):
        super().__init__(fonts)
        self.faceNames = {}
        self.resolved = []

    def loadFont(self, face, size):
        font = ImageFont.load_default(size=size)
        self.faceNames[id(font)] = face.name if face else None
        return font

    def hasGlyph(self, font, cluster):
        return not (self.faceNames[id(font)] == MONO_FAMILY and "\u3040" <= cluster[0] <= "\u9fff")

    def fontFor(self, family, weight, size, cluster):
        font, fontFamily = super().fontFor(family, weight, size, cluster)
        self.resolved.append((cluster, fontFamily))
        return font, fontFamily


def paintedBox(image: Image.Image):
    """Bounding box of non-transparent pixels"""
    return image.getchannel("A").getbbox()


@pytest.fixture
def engine():
    """Layout engine under test"""
    return PillowLayoutEngine()


@pytest.fixture
def noAssets():
    """Asset loader that must not be called"""
    return AsyncMock(side_effect=AssertionError("unexpected asset request"))


class TestResolveLength:
    """Test suite for resolveLength"""

    def test_units(self):
        """Pixels, percentages and em"""
        assert resolveLength(None, 100, 16) is None
        assert resolveLength(12, 100, 16) == 12.0
        assert resolveLength("40%", 1200, 16) == 480.0
        assert resolveLength("1.5em", None, 20) == 30.0
        assert resolveLength("8px", None, 16) == 8.0

    def test_percentage_without_reference(self):
        """Percentages of an unknown size are unset"""
        assert resolveLength("100%", None, 16) is None

    def test_invalid(self):
        """Unknown units are rejected"""
        with pytest.raises(ValueError):
            resolveLength("3vw", 100, 16)


class TestCollectEmojiClusters:
    """Test suite for collectEmojiClusters"""

    def test_unique_in_order(self):
        """Clusters are collected once, in document order"""
        root = Box(
            BoxKind.BLOCK,
            children=(
                TextRun(f"hi {GRIN} there"),
                Box(BoxKind.SPAN, children=(TextRun(f"{HEART} and {GRIN}"),)),
            ),
        )

        assert collectEmojiClusters(root) == [GRIN, HEART]

    def test_plain_text(self):
        """No emoji, no clusters"""
        assert collectEmojiClusters(TextRun("今日は 123")) == []


class TestPillowLayoutEngine:
    """Test suite for PillowLayoutEngine"""

    @pytest.mark.asyncio
    async def test_canvas_size_and_transparency(self, engine, noAssets):
        """Empty tree gives a fully transparent canvas of the requested size"""
        image = await engine.render(Box(BoxKind.BLOCK), 320, 200, [], noAssets)

        assert image.mode == "RGBA"
        assert image.size == (320, 200)
        assert paintedBox(image) is None

    @pytest.mark.asyncio
    async def test_background_box(self, engine, noAssets):
        """Explicit sizes and background color"""
        root = Box(
            BoxKind.BLOCK,
            children=(Box(BoxKind.BLOCK, Style(width=50, height=20, backgroundColor="#ff0000")),),
        )
        image = await engine.render(root, 200, 100, [], noAssets)

        assert image.getpixel((10, 10)) == (255, 0, 0, 255)
        assert image.getpixel((60, 30))[3] == 0
        assert paintedBox(image) == (0, 0, 50, 20)

    @pytest.mark.asyncio
    async def test_text_is_painted(self, engine, noAssets):
        """Text lands inside the flow's area"""
        root = Box(
            BoxKind.BLOCK,
            Style(padding=(10, 10, 10, 10)),
            (Box(BoxKind.FLOW, Style(color="#ffffff", fontSize=20), (TextRun("Hello"),)),),
        )
        image = await engine.render(root, 300, 100, [], noAssets)

        bbox = paintedBox(image)
        assert bbox is not None
        left, top, right, bottom = bbox
        assert left >= 10 and top >= 10
        assert right < 290 and bottom < 90

    @pytest.mark.asyncio
    async def test_centered_text(self, engine, noAssets):
        """Center alignment moves the line to the middle"""
        flow = Box(BoxKind.FLOW, Style(color="#ffffff", fontSize=20, textAlign="center"), (TextRun("ab"),))
        image = await engine.render(Box(BoxKind.BLOCK, children=(flow,)), 400, 60, [], noAssets)

        left, _, right, _ = paintedBox(image)
        assert left > 150 and right < 250

    @pytest.mark.asyncio
    async def test_long_text_wraps(self, engine, noAssets):
        """Lines wrap at the available width"""
        style = Style(color="#ffffff", fontSize=20)
        short = await engine.render(
            Box(BoxKind.BLOCK, children=(Box(BoxKind.FLOW, style, (TextRun("word"),)),)), 120, 300, [], noAssets
        )
        wrapped = await engine.render(
            Box(BoxKind.BLOCK, children=(Box(BoxKind.FLOW, style, (TextRun("word " * 12),)),)),
            120,
            300,
            [],
            noAssets,
        )

        assert paintedBox(wrapped)[3] > paintedBox(short)[3] * 2
        assert paintedBox(wrapped)[2] <= 120

    @pytest.mark.asyncio
    async def test_emoji_resolved_through_callback(self, engine):
        """Each distinct emoji is requested once and painted as an image"""
        loader = AsyncMock(return_value=pngDataUri(color=(0, 0, 255, 255)))
        flow = Box(BoxKind.FLOW, Style(fontSize=24), (TextRun(f"{GRIN}{GRIN}"),))

        image = await engine.render(Box(BoxKind.BLOCK, children=(flow,)), 200, 60, [], loader)

        loader.assert_awaited_once_with("emoji", GRIN)
        pixels = image.getdata()
        assert any(pixel == (0, 0, 255, 255) for pixel in pixels)

    @pytest.mark.asyncio
    async def test_emoji_failure_propagates(self, engine):
        """Asset loader errors abort rendering"""
        loader = AsyncMock(side_effect=RuntimeError("twemoji down"))
        flow = Box(BoxKind.FLOW, children=(TextRun(GRIN),))

        with pytest.raises(RuntimeError):
            await engine.render(Box(BoxKind.BLOCK, children=(flow,)), 100, 50, [], loader)

    @pytest.mark.asyncio
    async def test_image_cover_grayscale(self, engine, noAssets):
        """Full size cover image, desaturated"""
        node = ImageNode(
            pngDataUri((16, 8), (255, 0, 0, 255)),
            Style(width="100%", height="100%", objectFit="cover", grayscale=True),
        )
        image = await engine.render(Box(BoxKind.BLOCK, Style(height="100%"), (node,)), 40, 30, [], noAssets)

        assert paintedBox(image) == (0, 0, 40, 30)
        red, green, blue, alpha = image.getpixel((20, 15))
        assert red == green == blue
        assert alpha == 255

    @pytest.mark.asyncio
    async def test_row_with_flex_grow(self, engine, noAssets):
        """Fixed and growing children share a row"""
        root = Box(
            BoxKind.BLOCK,
            Style(direction="row", width="100%", height="100%"),
            (
                Box(BoxKind.BLOCK, Style(width="25%", backgroundColor="#ff0000")),
                Box(BoxKind.BLOCK, Style(flexGrow=1, backgroundColor="#00ff00")),
            ),
        )
        image = await engine.render(root, 200, 50, [], noAssets)

        assert image.getpixel((10, 25)) == (255, 0, 0, 255)
        assert image.getpixel((150, 25)) == (0, 255, 0, 255)
        assert paintedBox(image) == (0, 0, 200, 50)

    @pytest.mark.asyncio
    async def test_badge_background(self, engine, noAssets):
        """Inline badges paint their background behind the text"""
        badge = Box(BoxKind.BADGE, Style(backgroundColor="#1f1f1f", padding=(2, 6, 2, 6)), (TextRun("@Alice"),))
        flow = Box(BoxKind.FLOW, Style(color="#ffffff", fontSize=20), (TextRun("hi "), badge))

        image = await engine.render(Box(BoxKind.BLOCK, children=(flow,)), 300, 80, [], noAssets)

        pixels = set(image.getdata())
        assert (31, 31, 31, 255) in pixels

    @pytest.mark.asyncio
    async def test_mono_text_falls_back_per_glyph(self, engine, noAssets):
        """CJK in monospace text is drawn with the primary face, Latin stays mono"""
        book = RecordingFontBook([FontResource(PRIMARY_FAMILY, b""), FontResource(MONO_FAMILY, b"")])
        engine.fontBookClass = lambda fonts: book
        flow = Box(
            BoxKind.FLOW,
            Style(fontFamily=MONO_FAMILY, color="#ffffff", fontSize=20, preserveWhitespace=True),
            (TextRun("今日 ok"),),
        )

        image = await engine.render(Box(BoxKind.BLOCK, children=(flow,)), 300, 60, [], noAssets)

        assert book.resolved == [
            ("今", PRIMARY_FAMILY),
            ("日", PRIMARY_FAMILY),
            ("o", MONO_FAMILY),
            ("k", MONO_FAMILY),
        ]
        assert paintedBox(image) is not None
