"""
Visual node model and layout engines.

A visual tree is made of frozen ``Box``, ``TextRun`` and ``ImageNode`` nodes
carrying ``Style`` records. A ``LayoutEngine`` turns it into an RGBA image;
``PillowLayoutEngine`` is the bundled implementation.
"""

from .engine import DEFAULT_STYLE, AssetLoader, LayoutEngine, PillowLayoutEngine, collectEmojiClusters, resolveLength
from .fonts import FontBook, FontResource
from .style import EMPTY_STYLE, MONO_FAMILY, PRIMARY_FAMILY, Style, edges
from .visual import Box, BoxKind, ImageNode, TextRun, VisualNode, collect_text, find_nodes, iter_nodes

__all__ = [
    "AssetLoader",
    "Box",
    "BoxKind",
    "DEFAULT_STYLE",
    "EMPTY_STYLE",
    "FontBook",
    "FontResource",
    "ImageNode",
    "LayoutEngine",
    "MONO_FAMILY",
    "PRIMARY_FAMILY",
    "PillowLayoutEngine",
    "Style",
    "TextRun",
    "VisualNode",
    "collectEmojiClusters",
    "collect_text",
    "edges",
    "find_nodes",
    "iter_nodes",
    "resolveLength",
]
