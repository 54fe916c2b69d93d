"""
Tokenizer for Quotebot Markdown Parser

This module breaks Markdown input into a stream of tokens for the block
parser. Only block structure is decided here; inline syntax (emphasis,
mentions, emoji, spoilers, links) is left to the inline parser, which works
on the raw text the block parser reassembles from token contents.
"""

import re
from enum import Enum
from typing import Callable, List, NamedTuple


class TokenType(Enum):
    """Types of tokens recognized by the tokenizer."""

    TEXT = "text"
    NEWLINE = "newline"
    SPACE = "space"
    SPECIAL = "special"
    CODE_FENCE = "code_fence"
    HEADER_MARKER = "header_marker"
    LIST_MARKER = "list_marker"
    BLOCKQUOTE_MARKER = "blockquote_marker"
    CODE_SPAN = "code_span"
    ESCAPE = "escape"
    EOF = "eof"


class Token(NamedTuple):
    """A token with type, content, line and column position."""

    type: TokenType
    content: str
    line: int
    column: int


# Characters that end a plain text run
SPECIAL_CHARS = frozenset("*_[]()~`>#+-=|{}.!<:@\\")

HEADER_PATTERN = re.compile(r"(#{1,6})[ \t]+")
CODE_FENCE_PATTERN = re.compile(r"(```+|~~~+)([^\n]*)")
UNORDERED_LIST_PATTERN = re.compile(r"([-*+])[ \t]+")
ORDERED_LIST_PATTERN = re.compile(r"(\d{1,9}\.)[ \t]+")
BLOCKQUOTE_PATTERN = re.compile(r">")
CODE_SPAN_PATTERN = re.compile(r"(`+)([^`\n]|[^`\n][^\n]*?[^`\n])\1(?!`)")
ESCAPE_PATTERN = re.compile(r"\\(.)")


class Tokenizer:
    """
    Tokenizer that converts Markdown text into a stream of tokens.

    Block markers (headers, fences, list markers, quote markers) are only
    recognized at the logical start of a line, i.e. after a newline and
    optional indentation.
    """

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Token] = []

    def tokenize(self) -> List[Token]:
        """
        Tokenize the input text and return a list of tokens.

        Returns:
            List of Token objects, always terminated by an EOF token.
        """
        self.tokens = []
        self.pos = 0
        self.line = 1
        self.column = 1

        while self.pos < len(self.text):
            if not self._try_tokenize_special():
                self._tokenize_text()

        self.tokens.append(Token(TokenType.EOF, "", self.line, self.column))
        return self.tokens

    def _try_tokenize_special(self) -> bool:
        """Try to tokenize whitespace or Markdown syntax at the current position."""
        char = self.text[self.pos]

        if char == "\n":
            self._emit(TokenType.NEWLINE, "\n")
            return True

        if char in " \t":
            self._emit(TokenType.SPACE, self._peek_while(lambda c: c in " \t"))
            return True

        if self._is_at_line_start() and self._try_tokenize_block_marker():
            return True

        return self._try_tokenize_inline()

    def _try_tokenize_block_marker(self) -> bool:
        """Try to tokenize block-level markers at the start of a line."""
        match = CODE_FENCE_PATTERN.match(self.text, self.pos)
        if match:
            self._emit(TokenType.CODE_FENCE, match.group(0))
            return True

        match = HEADER_PATTERN.match(self.text, self.pos)
        if match:
            self._emit(TokenType.HEADER_MARKER, match.group(1))
            return True

        if BLOCKQUOTE_PATTERN.match(self.text, self.pos):
            self._emit(TokenType.BLOCKQUOTE_MARKER, ">")
            # One optional space belongs to the marker
            if self.text.startswith(" ", self.pos):
                self._emit(TokenType.SPACE, " ")
            return True

        for pattern in (UNORDERED_LIST_PATTERN, ORDERED_LIST_PATTERN):
            match = pattern.match(self.text, self.pos)
            if match:
                self._emit(TokenType.LIST_MARKER, match.group(1))
                return True

        return False

    def _try_tokenize_inline(self) -> bool:
        """Tokenize escapes, code spans and lone special characters."""
        match = ESCAPE_PATTERN.match(self.text, self.pos)
        if match:
            self._emit(TokenType.ESCAPE, match.group(0))
            return True

        match = CODE_SPAN_PATTERN.match(self.text, self.pos)
        if match:
            self._emit(TokenType.CODE_SPAN, match.group(0))
            return True

        char = self.text[self.pos]
        if char in SPECIAL_CHARS:
            self._emit(TokenType.SPECIAL, char)
            return True

        return False

    def _tokenize_text(self) -> None:
        """Tokenize a run of regular text."""
        text = self._peek_while(lambda c: c not in SPECIAL_CHARS and c not in "\n \t")
        if not text:
            # Should not happen, but never stall on unexpected input
            text = self.text[self.pos]
        self._emit(TokenType.TEXT, text)

    def _peek_while(self, predicate: Callable[[str], bool]) -> str:
        """Return characters from the current position while predicate holds."""
        end = self.pos
        while end < len(self.text) and predicate(self.text[end]):
            end += 1
        return self.text[self.pos : end]

    def _emit(self, token_type: TokenType, content: str) -> None:
        """Add a token for content at the current position and advance past it."""
        self.tokens.append(Token(token_type, content, self.line, self.column))
        for char in content:
            if char == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        self.pos += len(content)

    def _is_at_line_start(self) -> bool:
        """Check that only spaces and quote markers separate the position from the previous newline."""
        index = self.pos - 1
        while index >= 0:
            char = self.text[index]
            if char == "\n":
                return True
            if char not in " \t>":
                return False
            index -= 1
        return True
