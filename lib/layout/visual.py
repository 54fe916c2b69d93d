"""
Visual node tree: the styled, asset-resolved representation of a quote
that is handed to the layout engine.

All nodes are frozen; children are tuples.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, List, Tuple, Union

from .style import EMPTY_STYLE, Style


class BoxKind(Enum):
    """How a box takes part in layout."""

    # Stacks children vertically (or horizontally with direction="row")
    BLOCK = "block"
    # Wrapping inline container, children are laid out in lines
    FLOW = "flow"
    # Inline group, children flow into the parent's lines with this style
    SPAN = "span"
    # Inline atomic box with its own padding, background and border
    BADGE = "badge"


@dataclass(frozen=True)
class TextRun:
    """Run of text painted with the inherited style."""

    text: str
    style: Style = EMPTY_STYLE


@dataclass(frozen=True)
class ImageNode:
    """Image given as a data URI."""

    src: str
    style: Style = EMPTY_STYLE
    alt: str = ""


@dataclass(frozen=True)
class Box:
    """Styled container."""

    kind: BoxKind
    style: Style = EMPTY_STYLE
    children: Tuple["VisualNode", ...] = ()


VisualNode = Union[Box, TextRun, ImageNode]


def iter_nodes(node: VisualNode) -> Iterator[VisualNode]:
    """Depth-first pre-order walk over a visual tree."""
    yield node
    if isinstance(node, Box):
        for child in node.children:
            yield from iter_nodes(child)


def find_nodes(node: VisualNode, predicate: Callable[[VisualNode], bool]) -> List[VisualNode]:
    """Return every node of the tree matching predicate, in document order."""
    return [current for current in iter_nodes(node) if predicate(current)]


def collect_text(node: VisualNode) -> str:
    """Concatenate all text runs of a tree."""
    return "".join(current.text for current in iter_nodes(node) if isinstance(current, TextRun))
