"""
Visual renderer for Quotebot Markdown Parser

This module converts the parsed Markdown AST into a tree of styled visual
nodes (see lib.layout.visual) ready to be handed to a layout engine.

Rendering is asynchronous because custom emoji have to be resolved into
image data while walking the tree. Children of every node are rendered
concurrently and joined in source order before the parent is composed.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Mapping, Optional, Sequence, Tuple, assert_never

import budoux

from lib.layout.style import MONO_FAMILY, Style, edges
from lib.layout.visual import Box, BoxKind, ImageNode, TextRun, VisualNode

from .ast_nodes import (
    MarkdownAst,
    MarkdownNode,
    MDBlockQuote,
    MDCodeBlock,
    MDCustomEmoji,
    MDEmphasis,
    MDHeading,
    MDInlineCode,
    MDLink,
    MDList,
    MDMention,
    MDParagraph,
    MDSpoiler,
    MDStrikethrough,
    MDStrong,
    MDText,
)
from .parser import MarkdownParser

logger = logging.getLogger(__name__)

UNKNOWN_MENTION = "unknown"
BULLET = "•"

# (emojiId, animated) -> data URI
CustomEmojiLoader = Callable[[str, bool], Awaitable[str]]

# Text -> phrases which concatenate back to the text
Segmenter = Callable[[str], Sequence[str]]


ROOT_STYLE = Style(direction="column", gap=12, color="#fafafa", textAlign="center")
PARAGRAPH_STYLE = Style(fontSize=32, lineHeight=1.5, textAlign="center", gap=4)
HEADING_STYLES = (
    Style(fontSize=42, fontWeight=700),
    Style(fontSize=38, fontWeight=700),
    Style(fontSize=34, fontWeight=700),
)
STRONG_STYLE = Style(fontWeight=700)
EM_STYLE = Style(italic=True)
DEL_STYLE = Style(textDecoration="line-through")
BLOCKQUOTE_STYLE = Style(
    direction="column",
    gap=8,
    borderLeftWidth=4,
    borderColor="#666666",
    padding=(0, 0, 0, 12),
    color="#e0e0e0",
)
LIST_STYLE = Style(direction="column", gap=6, padding=(0, 0, 0, 24), fontSize=32, lineHeight=1.5)
LIST_ITEM_STYLE = Style(direction="row", alignItems="start")
LIST_BULLET_STYLE = Style(marginRight=8, textAlign="left")
LIST_CONTENT_STYLE = Style(direction="column", gap=4, flexGrow=1, textAlign="left")
INLINE_CODE_STYLE = Style(
    fontFamily=MONO_FAMILY,
    fontSize=28,
    backgroundColor="#1c1c1c",
    padding=edges(2, 6),
    borderRadius=4,
)
CODE_BLOCK_STYLE = Style(
    fontFamily=MONO_FAMILY,
    fontSize=28,
    lineHeight=1.4,
    backgroundColor="#111111",
    padding=edges(12),
    borderRadius=8,
    textAlign="left",
    preserveWhitespace=True,
)
LINK_STYLE = Style(color="#7cc7ff", textDecoration="underline")
MENTION_STYLE = Style(
    backgroundColor="#1f1f1f",
    padding=edges(2, 6),
    borderRadius=6,
    color="#cfd9ff",
    fontWeight=600,
)
SPOILER_STYLE = Style(
    borderWidth=1,
    borderColor="#555555",
    borderRadius=6,
    padding=edges(4, 8),
    backgroundColor="#ffffff0d",
)
CUSTOM_EMOJI_STYLE = Style(width="1.2em", height="1.2em")


@functools.cache
def _default_segmenter() -> Segmenter:
    return budoux.load_default_japanese_parser().parse


@dataclass(frozen=True)
class RenderContext:
    """
    Per-render collaborators.

    Attributes:
        mentionNames: userId -> display name, missing ids render as unknown
        loadCustomEmoji: async (emojiId, animated) -> data URI, may raise
    """

    mentionNames: Mapping[str, str] = field(default_factory=dict)
    loadCustomEmoji: Optional[CustomEmojiLoader] = None


class VisualRenderer:
    """
    Renderer that converts Markdown AST into a visual node tree.

    Every AST variant maps to exactly one fixed style. Headings deeper than
    the defined styles reuse the last one.
    """

    def __init__(self, context: RenderContext, segmenter: Optional[Segmenter] = None):
        """
        Initialize the visual renderer.

        Args:
            context: Mention names and custom emoji loader
            segmenter: Phrase splitter for plain text, BudouX by default
        """
        self.context = context
        self.segmenter = segmenter or _default_segmenter()

    async def render(self, ast: MarkdownAst) -> Box:
        """Render a whole document into the root column box."""
        children = await self.render_nodes(ast)
        return Box(BoxKind.BLOCK, ROOT_STYLE, tuple(children))

    async def render_nodes(self, nodes: Sequence[MarkdownNode]) -> List[VisualNode]:
        """Render sibling nodes concurrently, keeping source order."""
        rendered = await asyncio.gather(*(self.render_node(node) for node in nodes))
        return [visual for group in rendered for visual in group]

    async def render_node(self, node: MarkdownNode) -> List[VisualNode]:
        """
        Render a single AST node.

        Returns a list because plain text expands into several phrase runs.
        """
        match node:
            case MDText():
                return self._render_text(node.content)
            case MDParagraph():
                return [await self._box(BoxKind.FLOW, PARAGRAPH_STYLE, node.children)]
            case MDHeading():
                style = PARAGRAPH_STYLE.merged(HEADING_STYLES[min(node.level, len(HEADING_STYLES)) - 1])
                return [await self._box(BoxKind.FLOW, style, node.children)]
            case MDStrong():
                return [await self._box(BoxKind.SPAN, STRONG_STYLE, node.children)]
            case MDEmphasis():
                return [await self._box(BoxKind.SPAN, EM_STYLE, node.children)]
            case MDStrikethrough():
                return [await self._box(BoxKind.SPAN, DEL_STYLE, node.children)]
            case MDInlineCode():
                return [Box(BoxKind.BADGE, INLINE_CODE_STYLE, (TextRun(node.content),))]
            case MDCodeBlock():
                return [Box(BoxKind.BLOCK, CODE_BLOCK_STYLE, (TextRun(node.content),))]
            case MDBlockQuote():
                return [await self._box(BoxKind.BLOCK, BLOCKQUOTE_STYLE, node.children)]
            case MDList():
                return [await self._render_list(node)]
            case MDLink():
                return [await self._box(BoxKind.SPAN, LINK_STYLE, node.children)]
            case MDSpoiler():
                return [await self._box(BoxKind.BADGE, SPOILER_STYLE, node.children)]
            case MDMention():
                name = self.context.mentionNames.get(node.user_id)
                if name is None:
                    logger.debug(f"No display name for mention {node.user_id}")
                    name = UNKNOWN_MENTION
                return [Box(BoxKind.BADGE, MENTION_STYLE, (TextRun(f"@{name}"),))]
            case MDCustomEmoji():
                return [await self._render_custom_emoji(node)]
            case _:
                assert_never(node)

    async def _box(self, kind: BoxKind, style: Style, children: Sequence[MarkdownNode]) -> Box:
        return Box(kind, style, tuple(await self.render_nodes(children)))

    def _render_text(self, content: str) -> List[VisualNode]:
        if not content:
            return []
        return [TextRun(phrase) for phrase in self.segmenter(content) if phrase]

    async def _render_list(self, node: MDList) -> Box:
        async def renderItem(index: int, item: Tuple[MarkdownNode, ...]) -> Box:
            marker = f"{node.start_number + index}." if node.ordered else BULLET
            content = await self._box(BoxKind.BLOCK, LIST_CONTENT_STYLE, item)
            bullet = Box(BoxKind.FLOW, LIST_BULLET_STYLE, (TextRun(marker),))
            return Box(BoxKind.BLOCK, LIST_ITEM_STYLE, (bullet, content))

        rows = await asyncio.gather(*(renderItem(index, item) for index, item in enumerate(node.items)))
        return Box(BoxKind.BLOCK, LIST_STYLE, tuple(rows))

    async def _render_custom_emoji(self, node: MDCustomEmoji) -> ImageNode:
        if self.context.loadCustomEmoji is None:
            raise RuntimeError(f"No custom emoji loader configured for emoji {node.emoji_id}")
        src = await self.context.loadCustomEmoji(node.emoji_id, node.animated)
        return ImageNode(src, CUSTOM_EMOJI_STYLE, alt=node.name or "emoji")


async def render_markdown(text: str, context: RenderContext, segmenter: Optional[Segmenter] = None) -> Box:
    """
    Normalize, parse and render chat text into a visual tree.

    Args:
        text: Raw message text
        context: Render collaborators
        segmenter: Optional phrase splitter override

    Returns:
        Root column box of the document
    """
    ast = MarkdownParser({"normalize_line_breaks": True}).parse(text)
    return await VisualRenderer(context, segmenter).render(ast)
