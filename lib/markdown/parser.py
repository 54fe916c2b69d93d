"""
Main Markdown Parser for Quotebot Markdown Parser

This module provides the main MarkdownParser class that orchestrates
normalization, tokenization, block parsing and inline parsing.
"""

import logging
from typing import Any, Dict, Optional, Sequence

from .ast_nodes import MarkdownAst
from .block_parser import BlockParser
from .inline_parser import DEFAULT_RULES, InlineParser, InlineRule
from .normalizer import normalize_line_breaks
from .tokenizer import Tokenizer

logger = logging.getLogger(__name__)


class MarkdownParser:
    """
    Main Markdown parser that coordinates all parsing stages.

    Processing model:
    1. Normalization (optional): one paragraph per chat line
    2. Tokenization: split input into tokens
    3. Block parsing: build block nodes, running the inline parser on the
       text of every paragraph and heading

    Options:
        normalize_line_breaks: Run the chat line break normalizer first
        preserve_soft_line_breaks: Keep newlines inside paragraphs
        max_nesting_depth: Deepest quote/list nesting parsed as blocks
    """

    def __init__(self, options: Optional[Dict[str, Any]] = None, rules: Sequence[InlineRule] = DEFAULT_RULES):
        """
        Initialize the Markdown parser.

        Args:
            options: Optional parser configuration
            rules: Inline rule table, the Discord dialect by default
        """
        self.options = options or {}
        self.normalize = self.options.get("normalize_line_breaks", False)
        self.inline_parser = InlineParser(rules)

    def parse(self, markdown_text: str) -> MarkdownAst:
        """
        Parse Markdown text into an AST.

        Args:
            markdown_text: The Markdown text to parse

        Returns:
            Tuple of top-level block nodes

        Raises:
            ValueError: If input is not a string
        """
        if not isinstance(markdown_text, str):
            raise ValueError("Input must be a string")

        if self.normalize:
            markdown_text = normalize_line_breaks(markdown_text)

        tokens = Tokenizer(markdown_text).tokenize()
        ast = BlockParser(tokens, self.inline_parser, self.options).parse()
        logger.debug(f"Parsed {len(tokens)} tokens into {len(ast)} blocks")
        return ast


# Convenience function for quick parsing


def parse_markdown(text: str, **options) -> MarkdownAst:
    """
    Parse Markdown text into an AST.

    Args:
        text: Markdown text to parse
        **options: Parser options

    Returns:
        Tuple of top-level block nodes
    """
    parser = MarkdownParser(options)
    return parser.parse(text)
