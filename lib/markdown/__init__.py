"""
Quotebot Markdown Parser

A small, extensible parser for the Discord flavored Markdown dialect used in
chat messages, and an async renderer turning it into a visual node tree.

This module provides:
- Line break normalization (one paragraph per chat line, fence aware)
- Tokenization of Markdown input
- Block-level element parsing
- Inline element parsing driven by an ordered rule table, including
  mentions (<@123>), custom emoji (<:name:123>) and spoilers (||text||)
- AST (Abstract Syntax Tree) representation
- Visual rendering (see lib.layout)

Usage:
    from lib.markdown import RenderContext, parse_markdown, render_markdown

    ast = parse_markdown("**Hello** <@123>")

    context = RenderContext(mentionNames={"123": "Alice"}, loadCustomEmoji=loader)
    root = await render_markdown("**Hello** <@123>", context)
"""

from .ast_nodes import *  # noqa: F401,F403
from .block_parser import BlockParser
from .inline_parser import DEFAULT_RULES, InlineParser, InlineRule, regex_rule
from .mentions import extract_mention_user_ids
from .normalizer import normalize_line_breaks
from .parser import MarkdownParser, parse_markdown
from .renderer import RenderContext, VisualRenderer, render_markdown
from .tokenizer import Tokenizer

__version__ = "1.0.0"
__all__ = [
    "MarkdownParser",
    "parse_markdown",
    "normalize_line_breaks",
    "extract_mention_user_ids",
    "Tokenizer",
    "BlockParser",
    "InlineParser",
    "InlineRule",
    "regex_rule",
    "DEFAULT_RULES",
    "RenderContext",
    "VisualRenderer",
    "render_markdown",
    # AST Nodes
    "NodeType",
    "MarkdownNode",
    "MarkdownAst",
    "ast_to_dict",
    "MDText",
    "MDParagraph",
    "MDHeading",
    "MDStrong",
    "MDEmphasis",
    "MDStrikethrough",
    "MDInlineCode",
    "MDCodeBlock",
    "MDBlockQuote",
    "MDList",
    "MDLink",
    "MDSpoiler",
    "MDMention",
    "MDCustomEmoji",
]
