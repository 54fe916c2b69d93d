"""
Layout engine contract and a Pillow based implementation.

The engine takes a visual node tree (lib.layout.visual) and paints it onto a
transparent RGBA canvas of a fixed size. Layout follows a small flexbox-like
model:

- BLOCK boxes stack their children in a column (or a row), with gap,
  padding, alignment, explicit sizes and flex-grow.
- FLOW boxes lay inline content out in wrapped lines. SPAN boxes pass their
  style down to the text inside, BADGE boxes are atomic inline boxes.
- Text runs break at spaces and at run boundaries, so phrase-split text
  wraps at phrase boundaries.

Pictographic emoji in text are painted as images resolved through the asset
callback before layout starts.
"""

import asyncio
import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from lib.assets.twemoji import isPictographic, splitGraphemes

from .fonts import FontBook, FontResource
from .images import compositeAt, decodeDataUri, fadeRight, fitImage, grayscale, parseColor
from .style import PRIMARY_FAMILY, Length, Style
from .visual import Box, BoxKind, ImageNode, TextRun, VisualNode, iter_nodes

logger = logging.getLogger(__name__)

# (code, segment) -> asset reference, code is "emoji" for pictographic clusters
AssetLoader = Callable[[str, str], Awaitable[str]]

DEFAULT_STYLE = Style(
    fontFamily=PRIMARY_FAMILY,
    fontSize=16,
    fontWeight=400,
    italic=False,
    color="#000000",
    opacity=1.0,
    lineHeight=1.2,
    textAlign="left",
    preserveWhitespace=False,
)

ITALIC_SKEW = math.tan(math.radians(10))
TAB_SIZE = 4
_WHITESPACE_RE = re.compile(r"\s+")


class LayoutEngine(ABC):
    """Turns a visual node tree into pixels."""

    @abstractmethod
    async def render(
        self,
        root: VisualNode,
        width: int,
        height: int,
        fonts: Sequence[FontResource],
        loadAdditionalAsset: AssetLoader,
    ) -> Image.Image:
        """
        Lay out and paint a visual tree.

        Args:
            root: Root of the visual tree
            width: Canvas width in pixels
            height: Canvas height in pixels
            fonts: Fonts available to text, by family name and weight
            loadAdditionalAsset: Resolves ``("emoji", cluster)`` into a data URI

        Returns:
            RGBA image of exactly width x height, transparent where nothing
            is painted
        """
        pass


def collectEmojiClusters(root: VisualNode) -> List[str]:
    """Unique pictographic grapheme clusters of all text runs, in document order."""
    clusters: Dict[str, None] = {}
    for node in iter_nodes(root):
        if isinstance(node, TextRun):
            for cluster in splitGraphemes(node.text):
                if isPictographic(cluster):
                    clusters[cluster] = None
    return list(clusters)


class PillowLayoutEngine(LayoutEngine):
    """Layout engine painting with Pillow."""

    fontBookClass = FontBook

    async def render(
        self,
        root: VisualNode,
        width: int,
        height: int,
        fonts: Sequence[FontResource],
        loadAdditionalAsset: AssetLoader,
    ) -> Image.Image:
        clusters = collectEmojiClusters(root)
        if clusters:
            logger.debug(f"Resolving {len(clusters)} emoji")
        sources = await asyncio.gather(*(loadAdditionalAsset("emoji", cluster) for cluster in clusters))

        # Layout and painting are CPU bound, keep them off the event loop
        return await asyncio.to_thread(self.renderSync, root, width, height, fonts, dict(zip(clusters, sources)))

    def renderSync(
        self,
        root: VisualNode,
        width: int,
        height: int,
        fonts: Sequence[FontResource],
        emojiSources: Dict[str, str],
    ) -> Image.Image:
        """Lay out and paint a tree whose emoji are already resolved."""
        layoutPass = _LayoutPass(self.fontBookClass(fonts), emojiSources)
        canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        placement = layoutPass.layoutNode(root, DEFAULT_STYLE, width, height)
        placement.paint(canvas, 0, 0)
        return canvas


def resolveLength(value: Optional[Length], reference: Optional[float], fontSize: float) -> Optional[float]:
    """
    Resolve a style length into pixels.

    Percentages need a known reference size, otherwise the length is treated
    as unset.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = value.strip()
    if text.endswith("%"):
        return reference * float(text[:-1]) / 100 if reference is not None else None
    if text.endswith("em"):
        return float(text[:-2]) * fontSize
    if text.endswith("px"):
        return float(text[:-2])
    raise ValueError(f"Unsupported length: {value!r}")


# Placements: laid out nodes that know their size and how to paint themselves


class _Placement:
    width: float
    height: float

    def paint(self, canvas: Image.Image, x: float, y: float) -> None:
        raise NotImplementedError


@dataclass
class _BoxPlacement(_Placement):
    style: Style
    width: float
    height: float
    children: List[Tuple[float, float, _Placement]] = field(default_factory=list)

    def paint(self, canvas: Image.Image, x: float, y: float) -> None:
        _paintDecoration(canvas, self.style, x, y, self.width, self.height)
        for dx, dy, child in self.children:
            child.paint(canvas, x + dx, y + dy)


@dataclass
class _ImagePlacement(_Placement):
    image: Image.Image
    width: float
    height: float

    def paint(self, canvas: Image.Image, x: float, y: float) -> None:
        compositeAt(canvas, self.image, x, y)


def _paintDecoration(canvas: Image.Image, style: Style, x: float, y: float, width: float, height: float) -> None:
    if width < 1 or height < 1:
        return
    background = parseColor(style.backgroundColor)
    borderWidth = style.borderWidth or 0
    borderColor = parseColor(style.borderColor or "#000000")
    radius = style.borderRadius or 0
    x, y = int(round(x)), int(round(y))
    box = (x, y, x + int(round(width)) - 1, y + int(round(height)) - 1)

    draw = ImageDraw.Draw(canvas, "RGBA")
    if background is not None or borderWidth:
        draw.rounded_rectangle(
            box,
            radius=radius,
            fill=background,
            outline=borderColor if borderWidth else None,
            width=borderWidth,
        )
    if style.borderLeftWidth:
        draw.rectangle((x, y, x + style.borderLeftWidth - 1, box[3]), fill=borderColor)


# Inline atoms: unbreakable pieces of a line


@dataclass
class _Atom:
    width: float
    ascent: float
    descent: float
    canBreakBefore: bool = True
    isSpace: bool = False

    def paint(self, canvas: Image.Image, x: float, baseline: float) -> None:
        pass


@dataclass
class _BreakAtom(_Atom):
    """Line break; soft breaks do not create empty lines."""

    soft: bool = False


@dataclass
class _TextAtom(_Atom):
    text: str = ""
    font: Optional[ImageFont.FreeTypeFont] = None
    style: Style = DEFAULT_STYLE
    stroke: int = 0

    def paint(self, canvas: Image.Image, x: float, baseline: float) -> None:
        fill = parseColor(self.style.color, self.style.opacity if self.style.opacity is not None else 1.0)
        if not self.isSpace:
            if self.style.italic:
                self._paintSkewed(canvas, x, baseline, fill)
            else:
                draw = ImageDraw.Draw(canvas, "RGBA")
                draw.text(
                    (x, baseline),
                    self.text,
                    font=self.font,
                    fill=fill,
                    anchor="ls",
                    stroke_width=self.stroke,
                    stroke_fill=fill,
                )
        self._paintDecorationLine(canvas, x, baseline, fill)

    def _paintSkewed(self, canvas: Image.Image, x: float, baseline: float, fill) -> None:
        ascent, descent = self.font.getmetrics()
        shift = int(math.ceil(ascent * ITALIC_SKEW)) + 2
        layerBaseline = ascent + 1
        layer = Image.new("RGBA", (int(math.ceil(self.width)) + shift + 2, ascent + descent + 2), (0, 0, 0, 0))
        ImageDraw.Draw(layer).text(
            (1, layerBaseline),
            self.text,
            font=self.font,
            fill=fill,
            anchor="ls",
            stroke_width=self.stroke,
            stroke_fill=fill,
        )
        skewed = layer.transform(
            layer.size,
            Image.Transform.AFFINE,
            (1, ITALIC_SKEW, -ITALIC_SKEW * layerBaseline, 0, 1, 0),
            resample=Image.Resampling.BICUBIC,
        )
        compositeAt(canvas, skewed, x - 1, baseline - layerBaseline)

    def _paintDecorationLine(self, canvas: Image.Image, x: float, baseline: float, fill) -> None:
        decoration = self.style.textDecoration
        if decoration not in ("underline", "line-through"):
            return
        size = self.style.fontSize or DEFAULT_STYLE.fontSize
        thickness = max(1, round(size / 16))
        if decoration == "underline":
            lineY = baseline + max(1, round(size * 0.1))
        else:
            lineY = baseline - round(self.font.getmetrics()[0] * 0.3)
        draw = ImageDraw.Draw(canvas, "RGBA")
        draw.rectangle((x, lineY, x + self.width, lineY + thickness - 1), fill=fill)


@dataclass
class _ImageAtom(_Atom):
    image: Optional[Image.Image] = None

    def paint(self, canvas: Image.Image, x: float, baseline: float) -> None:
        compositeAt(canvas, self.image, x, baseline - self.ascent)


@dataclass
class _BoxAtom(_Atom):
    placement: Optional[_Placement] = None

    def paint(self, canvas: Image.Image, x: float, baseline: float) -> None:
        self.placement.paint(canvas, x, baseline - self.ascent)


@dataclass
class _LinesPlacement(_Placement):
    width: float
    height: float
    items: List[Tuple[float, float, _Atom]] = field(default_factory=list)

    def paint(self, canvas: Image.Image, x: float, y: float) -> None:
        for dx, baseline, atom in self.items:
            atom.paint(canvas, x + dx, y + baseline)


def _insets(style: Style) -> Tuple[float, float, float, float]:
    """Padding plus borders as (top, right, bottom, left)."""
    top, right, bottom, left = style.padding or (0, 0, 0, 0)
    border = style.borderWidth or 0
    return (top + border, right + border, bottom + border, left + border + (style.borderLeftWidth or 0))


def _isBlockLevel(node: VisualNode) -> bool:
    return isinstance(node, ImageNode) or (isinstance(node, Box) and node.kind in (BoxKind.BLOCK, BoxKind.FLOW))


class _LayoutPass:
    """State of a single layout: fonts and decoded images."""

    def __init__(self, fontBook: FontBook, emojiSources: Dict[str, str]):
        self.fontBook = fontBook
        self.emojiSources = emojiSources
        self._images: Dict[str, Image.Image] = {}

    def decodeImage(self, src: str) -> Image.Image:
        image = self._images.get(src)
        if image is None:
            image = decodeDataUri(src)
            self._images[src] = image
        return image

    # Block level

    def layoutNode(
        self,
        node: VisualNode,
        parentStyle: Style,
        availableWidth: float,
        availableHeight: Optional[float] = None,
        shrink: bool = False,
    ) -> _Placement:
        style = node.style.inherit(parentStyle)
        if isinstance(node, ImageNode):
            return self.layoutImage(node, style, availableWidth, availableHeight)
        if isinstance(node, Box) and node.kind == BoxKind.BLOCK:
            return self.layoutBlock(node, style, availableWidth, availableHeight, shrink)
        if isinstance(node, Box) and node.kind == BoxKind.FLOW:
            return self.layoutFlow(node.children, style, availableWidth, shrink)[0]
        # Inline content on its own becomes an anonymous flow
        return self.layoutFlow((node,), parentStyle, availableWidth, shrink)[0]

    def layoutImage(
        self,
        node: ImageNode,
        style: Style,
        availableWidth: Optional[float],
        availableHeight: Optional[float],
    ) -> _ImagePlacement:
        source = self.decodeImage(node.src)
        fontSize = style.fontSize or DEFAULT_STYLE.fontSize
        width = resolveLength(style.width, availableWidth, fontSize)
        height = resolveLength(style.height, availableHeight, fontSize)
        if width is None and height is None:
            width, height = float(source.width), float(source.height)
        elif width is None:
            width = height * source.width / max(1, source.height)
        elif height is None:
            height = width * source.height / max(1, source.width)

        image = fitImage(source, (int(round(width)), int(round(height))), style.objectFit)
        if style.grayscale:
            image = grayscale(image)
        if style.fadeFrom is not None:
            image = fadeRight(image, style.fadeFrom)
        return _ImagePlacement(image, width, height)

    def _blockChildren(self, children: Sequence[VisualNode]) -> List[VisualNode]:
        """Group consecutive inline children into anonymous flows."""
        result: List[VisualNode] = []
        inline: List[VisualNode] = []
        for child in children:
            if _isBlockLevel(child):
                if inline:
                    result.append(Box(BoxKind.FLOW, children=tuple(inline)))
                    inline = []
                result.append(child)
            else:
                inline.append(child)
        if inline:
            result.append(Box(BoxKind.FLOW, children=tuple(inline)))
        return result

    def layoutBlock(
        self,
        box: Box,
        style: Style,
        availableWidth: float,
        availableHeight: Optional[float],
        shrink: bool,
    ) -> _BoxPlacement:
        fontSize = style.fontSize or DEFAULT_STYLE.fontSize
        width = resolveLength(style.width, availableWidth, fontSize)
        height = resolveLength(style.height, availableHeight, fontSize)
        top, right, bottom, left = _insets(style)

        outerWidth = width if width is not None else availableWidth
        contentWidth = max(0.0, outerWidth - left - right)
        contentHeight = max(0.0, height - top - bottom) if height is not None else None

        children = self._blockChildren(box.children)
        if style.direction == "row":
            placed, usedWidth, usedHeight = self._layoutRow(children, style, contentWidth, contentHeight)
        else:
            placed, usedWidth, usedHeight = self._layoutColumn(children, style, contentWidth, contentHeight)

        if width is None and shrink:
            outerWidth = usedWidth + left + right
        outerHeight = height if height is not None else usedHeight + top + bottom

        placement = _BoxPlacement(style, outerWidth, outerHeight)
        placement.children = [(left + dx, top + dy, child) for dx, dy, child in placed]
        return placement

    def _layoutColumn(
        self,
        children: Sequence[VisualNode],
        style: Style,
        contentWidth: float,
        contentHeight: Optional[float],
    ) -> Tuple[List[Tuple[float, float, _Placement]], float, float]:
        gap = style.gap or 0
        align = style.alignItems or "stretch"
        placed: List[Tuple[float, float, _Placement]] = []
        y = 0.0
        usedWidth = 0.0

        for index, child in enumerate(children):
            if index:
                y += gap
            y += child.style.marginTop or 0
            placement = self.layoutNode(child, style, contentWidth, contentHeight, shrink=align != "stretch")
            dx = (contentWidth - placement.width) / 2 if align == "center" else 0.0
            placed.append((dx, y, placement))
            y += placement.height
            usedWidth = max(usedWidth, placement.width)

        return placed, usedWidth, y

    def _layoutRow(
        self,
        children: Sequence[VisualNode],
        style: Style,
        contentWidth: float,
        contentHeight: Optional[float],
    ) -> Tuple[List[Tuple[float, float, _Placement]], float, float]:
        gap = style.gap or 0
        align = style.alignItems or "stretch"
        placements: Dict[int, _Placement] = {}
        growers: List[int] = []
        used = gap * max(0, len(children) - 1)

        for index, child in enumerate(children):
            used += child.style.marginRight or 0
            if child.style.flexGrow:
                growers.append(index)
                continue
            placements[index] = self.layoutNode(
                child, style, contentWidth, contentHeight, shrink=child.style.width is None
            )
            used += placements[index].width

        totalGrow = sum(children[index].style.flexGrow for index in growers)
        remaining = max(0.0, contentWidth - used)
        for index in growers:
            share = remaining * children[index].style.flexGrow / totalGrow
            placements[index] = self.layoutNode(children[index], style, share, contentHeight)

        rowHeight = contentHeight
        if rowHeight is None:
            rowHeight = max((placement.height for placement in placements.values()), default=0.0)

        placed: List[Tuple[float, float, _Placement]] = []
        x = 0.0
        for index, child in enumerate(children):
            placement = placements[index]
            if align == "center":
                dy = (rowHeight - placement.height) / 2
            else:
                dy = 0.0
                if align == "stretch" and isinstance(placement, _BoxPlacement) and child.style.height is None:
                    placement.height = max(placement.height, rowHeight)
            placed.append((x, dy, placement))
            x += placement.width + (child.style.marginRight or 0) + gap

        return placed, max(0.0, x - gap), rowHeight

    # Inline level

    def layoutFlow(
        self,
        children: Sequence[VisualNode],
        style: Style,
        availableWidth: float,
        shrink: bool,
    ) -> Tuple[_BoxPlacement, float]:
        """
        Lay out inline content into lines.

        Returns:
            The placement and the baseline of its first line, relative to its top
        """
        fontSize = style.fontSize or DEFAULT_STYLE.fontSize
        width = resolveLength(style.width, availableWidth, fontSize)
        top, right, bottom, left = _insets(style)
        outerWidth = width if width is not None else availableWidth
        contentWidth = max(1.0, outerWidth - left - right)

        atoms: List[_Atom] = []
        self._collectAtoms(children, style, contentWidth, atoms)
        preserve = bool(style.preserveWhitespace)
        lines = self._breakLines(atoms, contentWidth, preserve)

        strutAscent, strutDescent = self._lineMetrics(style)
        lineWidths = [self._lineWidth(line, preserve) for line in lines]
        usedWidth = min(contentWidth, max(lineWidths, default=0.0))
        if width is None and shrink:
            contentWidth = usedWidth
            outerWidth = usedWidth + left + right

        gap = style.gap or 0
        linesPlacement = _LinesPlacement(contentWidth, 0.0)
        y = 0.0
        firstBaseline = None
        for index, (line, lineWidth) in enumerate(zip(lines, lineWidths)):
            if index:
                y += gap
            ascent = max([strutAscent] + [atom.ascent for atom in line])
            descent = max([strutDescent] + [atom.descent for atom in line])
            x = self._alignOffset(style.textAlign, contentWidth, lineWidth)
            for atom in line:
                linesPlacement.items.append((x, y + ascent, atom))
                x += atom.width
            if firstBaseline is None:
                firstBaseline = y + ascent
            y += ascent + descent
        linesPlacement.height = y

        placement = _BoxPlacement(style, outerWidth, y + top + bottom, [(left, top, linesPlacement)])
        return placement, (firstBaseline or 0.0) + top

    def _lineMetrics(self, style: Style) -> Tuple[float, float]:
        """Ascent and descent of a line box with half-leading applied."""
        fontSize = style.fontSize or DEFAULT_STYLE.fontSize
        font = self.fontBook.getFont(style.fontFamily, style.fontWeight or 400, fontSize)
        ascent, descent = font.getmetrics()
        lineBox = fontSize * (style.lineHeight or DEFAULT_STYLE.lineHeight)
        halfLeading = (lineBox - (ascent + descent)) / 2
        return ascent + halfLeading, descent + halfLeading

    @staticmethod
    def _alignOffset(textAlign: Optional[str], contentWidth: float, lineWidth: float) -> float:
        if textAlign == "center":
            return max(0.0, (contentWidth - lineWidth) / 2)
        if textAlign == "right":
            return max(0.0, contentWidth - lineWidth)
        return 0.0

    @staticmethod
    def _lineWidth(line: List[_Atom], preserve: bool) -> float:
        end = len(line)
        if not preserve:
            while end and line[end - 1].isSpace:
                end -= 1
        return sum(atom.width for atom in line[:end])

    @staticmethod
    def _breakLines(atoms: List[_Atom], maxWidth: float, preserve: bool) -> List[List[_Atom]]:
        lines: List[List[_Atom]] = [[]]
        width = 0.0
        for atom in atoms:
            line = lines[-1]
            if isinstance(atom, _BreakAtom):
                if not (atom.soft and not line):
                    lines.append([])
                    width = 0.0
                continue
            if not line and atom.isSpace and not preserve:
                continue

            if line and width + atom.width > maxWidth + 0.01:
                if atom.isSpace and not preserve:
                    lines.append([])
                    width = 0.0
                    continue
                if atom.canBreakBefore:
                    lines.append([atom])
                    width = atom.width
                    continue
                breakAt = next((i for i in range(len(line) - 1, 0, -1) if line[i].canBreakBefore), None)
                if breakAt is not None:
                    carry = line[breakAt:]
                    del line[breakAt:]
                    while carry and carry[0].isSpace and not preserve:
                        carry.pop(0)
                    carry.append(atom)
                    lines.append(carry)
                    width = sum(item.width for item in carry)
                    continue

            line.append(atom)
            width += atom.width

        if len(lines) > 1 and not lines[-1]:
            lines.pop()
        return lines

    def _collectAtoms(self, children: Sequence[VisualNode], style: Style, maxWidth: float, atoms: List[_Atom]) -> None:
        for child in children:
            childStyle = child.style.inherit(style)
            if isinstance(child, TextRun):
                self._textAtoms(child.text, childStyle, maxWidth, atoms)
            elif isinstance(child, ImageNode):
                placement = self.layoutImage(child, childStyle, maxWidth, None)
                atoms.append(
                    _ImageAtom(
                        placement.width,
                        placement.height * 0.8,
                        placement.height * 0.2,
                        image=placement.image,
                    )
                )
            elif child.kind == BoxKind.SPAN:
                self._collectAtoms(child.children, childStyle, maxWidth, atoms)
            elif child.kind == BoxKind.BADGE:
                placement, baseline = self.layoutFlow(child.children, childStyle, maxWidth, shrink=True)
                atoms.append(_BoxAtom(placement.width, baseline, placement.height - baseline, placement=placement))
            else:
                placement = self.layoutNode(child, style, maxWidth)
                atoms.append(_BreakAtom(0.0, 0.0, 0.0, soft=True))
                atoms.append(_BoxAtom(placement.width, placement.height, 0.0, placement=placement))
                atoms.append(_BreakAtom(0.0, 0.0, 0.0, soft=True))

    def _textAtoms(self, text: str, style: Style, maxWidth: float, atoms: List[_Atom]) -> None:
        fontSize = style.fontSize or DEFAULT_STYLE.fontSize
        weight = style.fontWeight or 400
        family = style.fontFamily
        spaceFont = self.fontBook.getFont(family, weight, fontSize)
        ascent, descent = self._lineMetrics(style)
        preserve = bool(style.preserveWhitespace)
        if preserve:
            text = text.replace("\t", " " * TAB_SIZE)
        else:
            text = _WHITESPACE_RE.sub(" ", text)

        breakNext = True
        # (cluster, font, family) of the word being collected
        word: List[Tuple[str, ImageFont.FreeTypeFont, Optional[str]]] = []

        def textAtom(
            value: str,
            font: ImageFont.FreeTypeFont,
            fontFamily: Optional[str],
            canBreakBefore: bool,
            isSpace: bool = False,
        ) -> _TextAtom:
            stroke = 1 if self.fontBook.needsSyntheticBold(fontFamily, weight) else 0
            return _TextAtom(
                font.getlength(value) + stroke,
                ascent,
                descent,
                canBreakBefore=canBreakBefore,
                isSpace=isSpace,
                text=value,
                font=font,
                style=style,
                stroke=stroke,
            )

        def flushWord() -> None:
            nonlocal breakNext
            if not word:
                return
            # Consecutive clusters drawn with the same font share one atom
            runs: List[Tuple[str, ImageFont.FreeTypeFont, Optional[str]]] = []
            for cluster, font, fontFamily in word:
                if runs and runs[-1][1] is font:
                    runs[-1] = (runs[-1][0] + cluster, font, fontFamily)
                else:
                    runs.append((cluster, font, fontFamily))
            pieces = [
                textAtom(value, font, fontFamily, breakNext and index == 0)
                for index, (value, font, fontFamily) in enumerate(runs)
            ]
            if sum(piece.width for piece in pieces) > maxWidth and len(word) > 1:
                # Overlong words may break between any two characters
                atoms.extend(textAtom(cluster, font, fontFamily, True) for cluster, font, fontFamily in word)
            else:
                atoms.extend(pieces)
            word.clear()
            breakNext = False

        for cluster in splitGraphemes(text):
            if cluster in ("\n", "\r\n"):
                flushWord()
                atoms.append(_BreakAtom(0.0, ascent, descent))
                breakNext = True
            elif cluster.isspace():
                flushWord()
                atoms.append(textAtom(cluster, spaceFont, family, True, isSpace=True))
                breakNext = True
            elif cluster in self.emojiSources:
                flushWord()
                size = int(round(fontSize))
                image = fitImage(self.decodeImage(self.emojiSources[cluster]), (size, size), "contain")
                atoms.append(_ImageAtom(size, size * 0.85, size * 0.15, canBreakBefore=breakNext, image=image))
                breakNext = False
            else:
                font, fontFamily = self.fontBook.fontFor(family, weight, fontSize, cluster)
                word.append((cluster, font, fontFamily))
        flushWord()
