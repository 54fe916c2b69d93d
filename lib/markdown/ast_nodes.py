"""
AST Node Classes for Quotebot Markdown Parser

This module defines the Abstract Syntax Tree node classes that represent
the structure of a parsed Discord-flavored Markdown document.

Nodes are frozen dataclasses: once the parser builds a tree nobody can
change it, so the renderer may walk it concurrently. The set of node
classes is closed, see ``MarkdownNode``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


class NodeType(Enum):
    """Enumeration of all AST node types."""

    TEXT = "text"
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    STRONG = "strong"
    EM = "em"
    DEL = "del"
    INLINE_CODE = "inlineCode"
    CODE_BLOCK = "codeBlock"
    BLOCK_QUOTE = "blockQuote"
    LIST = "list"
    LINK = "link"
    SPOILER = "spoiler"
    MENTION = "mention"
    CUSTOM_EMOJI = "customEmoji"


def _childrenToDict(children: Tuple["MarkdownNode", ...]) -> list:
    return [child.to_dict() for child in children]


@dataclass(frozen=True)
class MDText:
    """Plain text node."""

    content: str
    node_type: NodeType = field(default=NodeType.TEXT, init=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.node_type.value, "content": self.content}


@dataclass(frozen=True)
class MDParagraph:
    """Paragraph node containing inline elements."""

    children: Tuple["MarkdownNode", ...] = ()
    node_type: NodeType = field(default=NodeType.PARAGRAPH, init=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.node_type.value, "children": _childrenToDict(self.children)}


@dataclass(frozen=True)
class MDHeading:
    """Heading node with level (1-6)."""

    level: int
    children: Tuple["MarkdownNode", ...] = ()
    node_type: NodeType = field(default=NodeType.HEADING, init=False, repr=False)

    def __post_init__(self):
        if not 1 <= self.level <= 6:
            raise ValueError(f"Heading level must be 1-6, got {self.level}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.node_type.value,
            "level": self.level,
            "children": _childrenToDict(self.children),
        }


@dataclass(frozen=True)
class MDStrong:
    """Bold text."""

    children: Tuple["MarkdownNode", ...] = ()
    node_type: NodeType = field(default=NodeType.STRONG, init=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.node_type.value, "children": _childrenToDict(self.children)}


@dataclass(frozen=True)
class MDEmphasis:
    """Italic text."""

    children: Tuple["MarkdownNode", ...] = ()
    node_type: NodeType = field(default=NodeType.EM, init=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.node_type.value, "children": _childrenToDict(self.children)}


@dataclass(frozen=True)
class MDStrikethrough:
    """Struck-through text."""

    children: Tuple["MarkdownNode", ...] = ()
    node_type: NodeType = field(default=NodeType.DEL, init=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.node_type.value, "children": _childrenToDict(self.children)}


@dataclass(frozen=True)
class MDInlineCode:
    """Inline code span node."""

    content: str
    node_type: NodeType = field(default=NodeType.INLINE_CODE, init=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.node_type.value, "content": self.content}


@dataclass(frozen=True)
class MDCodeBlock:
    """Fenced code block node with optional language identifier."""

    content: str
    language: Optional[str] = None
    node_type: NodeType = field(default=NodeType.CODE_BLOCK, init=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.node_type.value, "content": self.content, "language": self.language}


@dataclass(frozen=True)
class MDBlockQuote:
    """Block quote node that can contain other block elements."""

    children: Tuple["MarkdownNode", ...] = ()
    node_type: NodeType = field(default=NodeType.BLOCK_QUOTE, init=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.node_type.value, "children": _childrenToDict(self.children)}


@dataclass(frozen=True)
class MDList:
    """List node, every item is a sequence of block nodes."""

    items: Tuple[Tuple["MarkdownNode", ...], ...] = ()
    ordered: bool = False
    start_number: int = 1
    node_type: NodeType = field(default=NodeType.LIST, init=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.node_type.value,
            "ordered": self.ordered,
            "start_number": self.start_number,
            "items": [_childrenToDict(item) for item in self.items],
        }


@dataclass(frozen=True)
class MDLink:
    """Link node. The target is kept only for debugging, links are never clickable in images."""

    children: Tuple["MarkdownNode", ...] = ()
    target: Optional[str] = None
    title: Optional[str] = None
    node_type: NodeType = field(default=NodeType.LINK, init=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.node_type.value,
            "target": self.target,
            "title": self.title,
            "children": _childrenToDict(self.children),
        }


@dataclass(frozen=True)
class MDSpoiler:
    """Spoiler (``||text||``) node."""

    children: Tuple["MarkdownNode", ...] = ()
    node_type: NodeType = field(default=NodeType.SPOILER, init=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.node_type.value, "children": _childrenToDict(self.children)}


@dataclass(frozen=True)
class MDMention:
    """User mention (``<@123>`` or ``<@!123>``)."""

    user_id: str
    node_type: NodeType = field(default=NodeType.MENTION, init=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.node_type.value, "user_id": self.user_id}


@dataclass(frozen=True)
class MDCustomEmoji:
    """Custom guild emoji (``<:name:id>`` or ``<a:name:id>``)."""

    emoji_id: str
    name: str = ""
    animated: bool = False
    node_type: NodeType = field(default=NodeType.CUSTOM_EMOJI, init=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.node_type.value,
            "id": self.emoji_id,
            "name": self.name,
            "animated": self.animated,
        }


MarkdownNode = Union[
    MDText,
    MDParagraph,
    MDHeading,
    MDStrong,
    MDEmphasis,
    MDStrikethrough,
    MDInlineCode,
    MDCodeBlock,
    MDBlockQuote,
    MDList,
    MDLink,
    MDSpoiler,
    MDMention,
    MDCustomEmoji,
]

# Parsed document: ordered forest of top-level block nodes
MarkdownAst = Tuple[MarkdownNode, ...]


def ast_to_dict(ast: MarkdownAst) -> list:
    """Convert a whole forest to JSON-serializable list."""
    return _childrenToDict(ast)
