"""
Block Parser for Quotebot Markdown Parser

This module handles parsing of block-level elements like headings,
paragraphs, fenced code blocks, lists and block quotes. Text of paragraphs
and headings is handed to the inline parser as soon as the block is complete,
so the resulting nodes are built once and never modified.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from .ast_nodes import (
    MarkdownAst,
    MarkdownNode,
    MDBlockQuote,
    MDCodeBlock,
    MDHeading,
    MDList,
    MDParagraph,
    MDText,
)
from .inline_parser import InlineParser
from .tokenizer import Token, TokenType

FENCE_PATTERN = re.compile(r"^(```+|~~~+)(.*)$")

BLOCK_START_TOKENS = (
    TokenType.HEADER_MARKER,
    TokenType.CODE_FENCE,
    TokenType.BLOCKQUOTE_MARKER,
    TokenType.LIST_MARKER,
)


class BlockParser:
    """
    Parser for block-level Markdown elements.

    Processes a stream of tokens and builds block nodes. Nested containers
    (block quotes, list items) are parsed by sub-parsers working on the
    container's own tokens.
    """

    def __init__(
        self,
        tokens: List[Token],
        inline_parser: Optional[InlineParser] = None,
        options: Optional[Dict[str, Any]] = None,
        depth: int = 0,
    ):
        self.tokens = tokens
        self.pos = 0
        self.current_token: Optional[Token] = self.tokens[0] if tokens else None
        self.inline_parser = inline_parser or InlineParser()
        self.options = options or {}
        self.depth = depth

        # Parser options
        self.preserve_soft_line_breaks = self.options.get("preserve_soft_line_breaks", False)
        self.max_nesting_depth = self.options.get("max_nesting_depth", 32)

    def parse(self) -> MarkdownAst:
        """
        Parse tokens into a forest of block nodes.

        Returns:
            Tuple of block nodes in source order.
        """
        blocks: List[MarkdownNode] = []

        while not self._is_at_end():
            self._skip_newlines()
            if self._is_at_end():
                break

            block = self._parse_block()
            if block is not None:
                blocks.append(block)

        return tuple(blocks)

    def _parse_block(self) -> Optional[MarkdownNode]:
        """Parse a single block element."""
        can_nest = self.depth < self.max_nesting_depth

        if self._current_token_is(TokenType.HEADER_MARKER):
            return self._parse_header()

        if self._current_token_is(TokenType.CODE_FENCE):
            return self._parse_fenced_code_block()

        if can_nest and self._current_token_is(TokenType.BLOCKQUOTE_MARKER):
            return self._parse_block_quote()

        if can_nest and self._current_token_is(TokenType.LIST_MARKER) and self._is_list_marker_at_line_start():
            return self._parse_list()

        return self._parse_paragraph()

    def _parse_header(self) -> Optional[MarkdownNode]:
        """Parse a heading element."""
        level = len(self.current_token.content)  # type: ignore
        self._advance()

        text_content = ""
        while not self._is_at_end() and not self._current_token_is(TokenType.NEWLINE):
            text_content += self.current_token.content  # type: ignore
            self._advance()

        return MDHeading(level, self.inline_parser.parse_inline_content(text_content.strip()))

    def _parse_fenced_code_block(self) -> MDCodeBlock:
        """Parse a fenced code block. Content is kept verbatim."""
        fence_match = FENCE_PATTERN.match(self.current_token.content)  # type: ignore
        if fence_match:
            fence_chars = fence_match.group(1)
            language = fence_match.group(2).strip() or None
        else:
            fence_chars = self.current_token.content[:3]  # type: ignore
            language = None

        self._advance()

        # Whole block on the opening line: ```code```
        if language and fence_chars in language:
            code_content = language.split(fence_chars, 1)[0]
            return MDCodeBlock(code_content, None)

        if self._current_token_is(TokenType.NEWLINE):
            self._advance()

        code_lines = []
        while not self._is_at_end():
            if self._is_closing_fence(fence_chars):
                self._advance()
                break

            line_content = ""
            while not self._is_at_end() and not self._current_token_is(TokenType.NEWLINE):
                line_content += self.current_token.content  # type: ignore
                self._advance()
            code_lines.append(line_content)

            if self._current_token_is(TokenType.NEWLINE):
                self._advance()

        return MDCodeBlock("\n".join(code_lines), language)

    def _is_closing_fence(self, fence_chars: str) -> bool:
        """Valid closing fence: same character, same or longer run, no info string."""
        if not self._current_token_is(TokenType.CODE_FENCE):
            return False
        closing_match = FENCE_PATTERN.match(self.current_token.content)  # type: ignore
        if not closing_match:
            return False
        closing_chars = closing_match.group(1)
        return (
            closing_chars[0] == fence_chars[0]
            and len(closing_chars) >= len(fence_chars)
            and not closing_match.group(2).strip()
        )

    def _parse_block_quote(self) -> MDBlockQuote:
        """Parse consecutive quoted lines as one block quote."""
        quoted_tokens: List[Token] = []

        while not self._is_at_end() and self._current_token_is(TokenType.BLOCKQUOTE_MARKER):
            self._advance()
            if self._current_token_is(TokenType.SPACE):
                self._advance()

            while not self._is_at_end() and not self._current_token_is(TokenType.NEWLINE):
                quoted_tokens.append(self.current_token)  # type: ignore
                self._advance()

            # Keep line structure, blank lines between quoted lines separate paragraphs
            newlines = 0
            while self._current_token_is(TokenType.NEWLINE) or self._current_token_is(TokenType.SPACE):
                if self._current_token_is(TokenType.NEWLINE):
                    newlines += 1
                self._advance()
            if not self._current_token_is(TokenType.BLOCKQUOTE_MARKER):
                break
            quoted_tokens.extend(Token(TokenType.NEWLINE, "\n", 0, 0) for _ in range(min(newlines, 2)))

        return MDBlockQuote(self._parse_nested(quoted_tokens))

    def _parse_list(self) -> MDList:
        """Parse a list (ordered or unordered)."""
        first_marker = self.current_token.content  # type: ignore
        list_indentation = self._get_current_indentation()

        ordered = first_marker.endswith(".")
        start_number = int(first_marker[:-1]) if ordered else 1

        items: List[Tuple[MarkdownNode, ...]] = []
        while (
            not self._is_at_end()
            and self._current_token_is(TokenType.LIST_MARKER)
            and self._is_list_marker_at_line_start()
            and self._get_current_indentation() == list_indentation
            and self.current_token.content.endswith(".") == ordered  # type: ignore
        ):
            items.append(self._parse_list_item())

            # Blank lines between items do not end the list
            if self._current_token_is(TokenType.NEWLINE) and self._next_is_list_continuation():
                self._skip_whitespace_and_newlines()

        return MDList(tuple(items), ordered=ordered, start_number=start_number)

    def _parse_list_item(self) -> Tuple[MarkdownNode, ...]:
        """Parse a single list item."""
        current_indentation = self._get_current_indentation()
        self._advance()  # consume list marker

        if self._current_token_is(TokenType.SPACE):
            self._advance()

        item_content: List[Token] = []
        while not self._is_at_end():
            if self._current_token_is(TokenType.LIST_MARKER) and self._is_list_marker_at_line_start():
                indentation = self._get_current_indentation()
                if indentation <= current_indentation:
                    # Sibling or parent level item
                    break
                # Nested list, drop the indentation so the sub-parser sees it at line start
                while item_content and item_content[-1].type == TokenType.SPACE:
                    item_content.pop()

            # Blank line followed by non-list content ends the item
            if (
                self._current_token_is(TokenType.NEWLINE)
                and self._has_blank_line_ahead()
                and not self._next_is_list_continuation()
            ):
                break

            item_content.append(self.current_token)  # type: ignore
            self._advance()

        return self._parse_nested(item_content)

    def _parse_paragraph(self) -> Optional[MDParagraph]:
        """Parse a paragraph."""
        text_content = ""
        start_pos = self.pos

        while not self._is_at_end():
            if self._current_token_is(TokenType.NEWLINE) and self._has_blank_line_ahead():
                break
            if self.pos != start_pos and self._is_block_element_start():
                break

            if self.current_token.type == TokenType.NEWLINE:  # type: ignore
                text_content += "\n" if self.preserve_soft_line_breaks else " "
            else:
                text_content += self.current_token.content  # type: ignore
            self._advance()

        if not text_content.strip():
            return None

        return MDParagraph(self.inline_parser.parse_inline_content(text_content.strip()))

    def _parse_nested(self, tokens: List[Token]) -> Tuple[MarkdownNode, ...]:
        """Parse container content with a sub-parser."""
        if not tokens:
            return ()
        sub_parser = BlockParser(
            tokens + [Token(TokenType.EOF, "", 0, 0)],
            self.inline_parser,
            self.options,
            self.depth + 1,
        )
        return sub_parser.parse()

    # Helper methods

    def _advance(self) -> None:
        """Move to the next token."""
        self.pos += 1
        self.current_token = self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _is_at_end(self) -> bool:
        """Check if we're at the end of tokens."""
        return self.current_token is None or self.current_token.type == TokenType.EOF

    def _current_token_is(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self.current_token is not None and self.current_token.type == token_type

    def _skip_whitespace_and_newlines(self) -> None:
        """Skip whitespace and newline tokens."""
        while not self._is_at_end() and self.current_token.type in (  # type: ignore
            TokenType.SPACE,
            TokenType.NEWLINE,
        ):
            self._advance()

    def _skip_newlines(self) -> None:
        """Skip newline tokens and whitespace-only lines."""
        while not self._is_at_end():
            if self._current_token_is(TokenType.NEWLINE):
                self._advance()
                continue
            if self._current_token_is(TokenType.SPACE) and self._is_whitespace_only_line():
                self._advance()
                continue
            break

    def _is_whitespace_only_line(self) -> bool:
        """Check that only spaces follow the current position up to the line end."""
        temp_pos = self.pos
        while temp_pos < len(self.tokens) and self.tokens[temp_pos].type == TokenType.SPACE:
            temp_pos += 1
        return temp_pos >= len(self.tokens) or self.tokens[temp_pos].type in (TokenType.NEWLINE, TokenType.EOF)

    def _has_blank_line_ahead(self) -> bool:
        """Check if the current newline is followed by a blank line."""
        temp_pos = self.pos
        if temp_pos < len(self.tokens) and self.tokens[temp_pos].type == TokenType.NEWLINE:
            temp_pos += 1
        while temp_pos < len(self.tokens) and self.tokens[temp_pos].type == TokenType.SPACE:
            temp_pos += 1
        return temp_pos < len(self.tokens) and self.tokens[temp_pos].type in (TokenType.NEWLINE, TokenType.EOF)

    def _next_is_list_continuation(self) -> bool:
        """Check if next non-whitespace token continues the list."""
        temp_pos = self.pos
        while temp_pos < len(self.tokens) and self.tokens[temp_pos].type in (TokenType.SPACE, TokenType.NEWLINE):
            temp_pos += 1
        return temp_pos < len(self.tokens) and self.tokens[temp_pos].type == TokenType.LIST_MARKER

    def _is_block_element_start(self) -> bool:
        """Check if current position starts a block element."""
        if self._is_at_end():
            return False
        if self.current_token.type == TokenType.LIST_MARKER:  # type: ignore
            return self._is_list_marker_at_line_start()
        return self.current_token.type in BLOCK_START_TOKENS  # type: ignore

    def _get_current_indentation(self) -> int:
        """Count the spaces between the previous newline and the current token."""
        temp_pos = self.pos - 1
        spaces = 0
        while temp_pos >= 0 and self.tokens[temp_pos].type == TokenType.SPACE:
            spaces += len(self.tokens[temp_pos].content.expandtabs(4))
            temp_pos -= 1
        return spaces

    def _is_list_marker_at_line_start(self) -> bool:
        """Check if current LIST_MARKER token is at the logical start of a line."""
        if not self._current_token_is(TokenType.LIST_MARKER):
            return False

        temp_pos = self.pos - 1
        while temp_pos >= 0 and self.tokens[temp_pos].type == TokenType.SPACE:
            temp_pos -= 1
        return temp_pos < 0 or self.tokens[temp_pos].type == TokenType.NEWLINE
