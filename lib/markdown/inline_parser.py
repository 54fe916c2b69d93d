"""
Inline Parser for Quotebot Markdown Parser

This module handles parsing of inline elements (emphasis, links, code spans,
autolinks) plus the Discord specific syntax: user mentions, custom emoji and
spoilers.

Inline syntax is described by a table of rules. At every position the parser
tries the rules in ascending ``order`` and takes the first match; the ``text``
rule always matches, so unknown syntax degrades to literal text.
"""

import re
from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Optional, Sequence, Tuple

from .ast_nodes import (
    MarkdownNode,
    MDCustomEmoji,
    MDEmphasis,
    MDInlineCode,
    MDLink,
    MDMention,
    MDSpoiler,
    MDStrikethrough,
    MDStrong,
    MDText,
)

# (node or None, position after the match)
RuleResult = Tuple[Optional[MarkdownNode], int]


@dataclass(frozen=True)
class InlineRule:
    """
    Single inline syntax rule.

    Attributes:
        name: Unique rule name, used to exclude rules in nested contexts
        order: Precedence, lower orders are tried first
        parse: Callable ``(parser, content, pos, excluded) -> (node, new_pos)``,
            returns ``(None, pos)`` when the rule does not match
    """

    name: str
    order: float
    parse: Callable[["InlineParser", str, int, FrozenSet[str]], RuleResult]


def regex_rule(
    name: str,
    order: float,
    pattern: str,
    build: Callable[[re.Match, "InlineParser", FrozenSet[str]], MarkdownNode],
) -> InlineRule:
    """
    Create an inline rule from a regex pattern and a node constructor.

    Args:
        name: Rule name
        order: Rule precedence
        pattern: Regular expression, anchored at the current position
        build: Creates the node from the match; receives the parser to parse
            nested content

    Returns:
        InlineRule wrapping the pattern
    """
    compiled = re.compile(pattern)

    def parse(parser: "InlineParser", content: str, pos: int, excluded: FrozenSet[str]) -> RuleResult:
        match = compiled.match(content, pos)
        if not match:
            return None, pos
        return build(match, parser, excluded), match.end()

    return InlineRule(name, order, parse)


# Discord specific rules

MENTION_PATTERN = r"<@!?(\d+)>"

MENTION_RULE = regex_rule(
    "mention",
    30,
    MENTION_PATTERN,
    lambda match, parser, excluded: MDMention(match.group(1)),
)

CUSTOM_EMOJI_RULE = regex_rule(
    "customEmoji",
    31,
    r"<(a?):([^:>]+):(\d+)>",
    lambda match, parser, excluded: MDCustomEmoji(
        emoji_id=match.group(3),
        name=match.group(2),
        animated=match.group(1) == "a",
    ),
)

SPOILER_RULE = regex_rule(
    "spoiler",
    50,
    r"\|\|((?:(?!\|\|)[\s\S])+)\|\|",
    lambda match, parser, excluded: MDSpoiler(parser.parse_nodes(match.group(1), excluded)),
)


# Base markdown rules


def _parse_escape(parser: "InlineParser", content: str, pos: int, excluded: FrozenSet[str]) -> RuleResult:
    """Backslash escapes the next character."""
    if content[pos] != "\\" or pos + 1 >= len(content):
        return None, pos
    return MDText(content[pos + 1]), pos + 2


def _parse_code_span(parser: "InlineParser", content: str, pos: int, excluded: FrozenSet[str]) -> RuleResult:
    """Code span: backtick run, content, backtick run of the same length."""
    if content[pos] != "`":
        return None, pos

    start_pos = pos
    while pos < len(content) and content[pos] == "`":
        pos += 1
    backtick_count = pos - start_pos

    code_start = pos
    while pos < len(content):
        if content[pos] != "`":
            pos += 1
            continue

        closing_start = pos
        while pos < len(content) and content[pos] == "`":
            pos += 1

        if pos - closing_start == backtick_count:
            code_content = content[code_start:closing_start]
            if not code_content:
                break
            # Trim one leading and trailing space if both present
            if code_content.startswith(" ") and code_content.endswith(" ") and len(code_content) > 2:
                code_content = code_content[1:-1]
            return MDInlineCode(code_content), pos

    return None, start_pos


_AUTOLINK_URL = re.compile(r"<(https?://[^\s<>]+)>")
_AUTOLINK_EMAIL = re.compile(r"<([^\s<>@]+@[^\s<>@]+\.[^\s<>@]+)>")


def _parse_autolink(parser: "InlineParser", content: str, pos: int, excluded: FrozenSet[str]) -> RuleResult:
    """Autolink: ``<https://...>`` or ``<user@host>``."""
    match = _AUTOLINK_URL.match(content, pos)
    if match:
        url = match.group(1)
        return MDLink((MDText(url),), target=url), match.end()

    match = _AUTOLINK_EMAIL.match(content, pos)
    if match:
        email = match.group(1)
        return MDLink((MDText(email),), target=f"mailto:{email}"), match.end()

    return None, pos


_LINK_TITLE_PATTERNS = (re.compile(r'\s+"([^"]*)"$'), re.compile(r"\s+'([^']*)'$"))


def _parse_link_destination_and_title(link_content: str) -> Tuple[str, Optional[str]]:
    """Parse URL and optional title from link content."""
    link_content = link_content.strip()
    for pattern in _LINK_TITLE_PATTERNS:
        title_match = pattern.search(link_content)
        if title_match:
            return link_content[: title_match.start()].strip(), title_match.group(1)
    return link_content, None


def _parse_link(parser: "InlineParser", content: str, pos: int, excluded: FrozenSet[str]) -> RuleResult:
    """Inline link: ``[text](url "title")``."""
    if content[pos] != "[":
        return None, pos

    bracket_pos = content.find("]", pos + 1)
    if bracket_pos == -1 or bracket_pos + 1 >= len(content) or content[bracket_pos + 1] != "(":
        return None, pos

    paren_end = content.find(")", bracket_pos + 2)
    if paren_end == -1:
        return None, pos

    link_text = content[pos + 1 : bracket_pos]
    url, title = _parse_link_destination_and_title(content[bracket_pos + 2 : paren_end])
    # No links inside links
    children = parser.parse_nodes(link_text, excluded | {"link", "autolink"})
    return MDLink(children, target=url, title=title), paren_end + 1


def _is_underscore_opener(content: str, pos: int) -> bool:
    """Opening underscores must not follow a word character (snake_case stays text)."""
    return pos == 0 or not content[pos - 1].isalnum()


def _is_underscore_closer(content: str, end: int) -> bool:
    """Closing underscores must not be followed by a word character."""
    return end >= len(content) or not content[end].isalnum()


def _find_closing_delimiter(content: str, pos: int, char: str, delim_count: int) -> int:
    """Find the closing delimiter run of exactly ``delim_count`` characters, -1 if none."""
    while pos <= len(content) - delim_count:
        if content[pos] == "\\":
            pos += 2
            continue
        if content[pos] != char:
            pos += 1
            continue

        run_end = pos
        while run_end < len(content) and content[run_end] == char:
            run_end += 1

        if run_end - pos == delim_count and (char != "_" or _is_underscore_closer(content, run_end)):
            return pos
        pos = run_end

    return -1


def _parse_emphasis(parser: "InlineParser", content: str, pos: int, excluded: FrozenSet[str]) -> RuleResult:
    """Emphasis: ``*em*``, ``_em_``, ``**strong**``, ``__strong__``, ``***both***``, ``~~del~~``."""
    char = content[pos]
    if char not in "*_~":
        return None, pos

    run_end = pos
    while run_end < len(content) and content[run_end] == char:
        run_end += 1
    delim_count = run_end - pos

    if char == "~" and delim_count != 2:
        return None, pos
    if delim_count > 3:
        return None, pos
    if char == "_" and not _is_underscore_opener(content, pos):
        return None, pos

    closing_pos = _find_closing_delimiter(content, run_end, char, delim_count)
    if closing_pos == -1:
        return None, pos

    inner = content[run_end:closing_pos]
    if not inner.strip():
        return None, pos

    children = parser.parse_nodes(inner, excluded)
    new_pos = closing_pos + delim_count

    if char == "~":
        return MDStrikethrough(children), new_pos
    if delim_count == 1:
        return MDEmphasis(children), new_pos
    if delim_count == 2:
        return MDStrong(children), new_pos
    return MDStrong((MDEmphasis(children),)), new_pos


# Characters that may start inline syntax and therefore end a text run
TEXT_STOP_CHARS = frozenset("*_~`[<\\|")


def _parse_text(parser: "InlineParser", content: str, pos: int, excluded: FrozenSet[str]) -> RuleResult:
    """Plain text until the next special character; a lone special character is literal."""
    end = pos + 1
    while end < len(content) and content[end] not in TEXT_STOP_CHARS:
        end += 1
    return MDText(content[pos:end]), end


ESCAPE_RULE = InlineRule("escape", 0, _parse_escape)
INLINE_CODE_RULE = InlineRule("inlineCode", 10, _parse_code_span)
AUTOLINK_RULE = InlineRule("autolink", 20, _parse_autolink)
LINK_RULE = InlineRule("link", 40, _parse_link)
EMPHASIS_RULE = InlineRule("emphasis", 60, _parse_emphasis)
TEXT_RULE = InlineRule("text", 100, _parse_text)

DEFAULT_RULES: Tuple[InlineRule, ...] = (
    ESCAPE_RULE,
    INLINE_CODE_RULE,
    AUTOLINK_RULE,
    MENTION_RULE,
    CUSTOM_EMOJI_RULE,
    LINK_RULE,
    SPOILER_RULE,
    EMPHASIS_RULE,
    TEXT_RULE,
)

# Rules that must be tried before generic emphasis and text scanning
PRIORITY_RULES = ("mention", "customEmoji", "spoiler")
GENERIC_RULES = ("emphasis", "text")


class InlineParser:
    """
    Parser for inline Markdown elements.

    Processes inline content within block elements and builds AST nodes
    using an ordered rule table.
    """

    def __init__(self, rules: Sequence[InlineRule] = DEFAULT_RULES):
        self.rules: List[InlineRule] = sorted(rules, key=lambda rule: rule.order)
        self._validate_rules()

    def _validate_rules(self) -> None:
        """Ensure the Discord rules out-rank the generic ones and text is the fallback."""
        orders = {rule.name: rule.order for rule in self.rules}
        if len(orders) != len(self.rules):
            raise ValueError("Inline rule names must be unique")
        if "text" not in orders:
            raise ValueError("Inline rules must contain the 'text' fallback rule")

        for priorityName in PRIORITY_RULES:
            if priorityName not in orders:
                continue
            for genericName in GENERIC_RULES:
                if genericName in orders and orders[priorityName] >= orders[genericName]:
                    raise ValueError(
                        f"Inline rule '{priorityName}' (order {orders[priorityName]}) must precede "
                        f"'{genericName}' (order {orders[genericName]})"
                    )

    def parse_inline_content(self, content: str) -> Tuple[MarkdownNode, ...]:
        """
        Parse inline content and return inline nodes.

        Args:
            content: Raw text content to parse for inline elements

        Returns:
            Tuple of inline nodes in source order
        """
        if not content:
            return ()
        return self.parse_nodes(content, frozenset())

    def parse_nodes(self, content: str, excluded: FrozenSet[str]) -> Tuple[MarkdownNode, ...]:
        """Parse content with every rule except the ``excluded`` ones."""
        nodes: List[MarkdownNode] = []
        pos = 0

        while pos < len(content):
            for rule in self.rules:
                if rule.name in excluded and rule.name != "text":
                    continue
                node, new_pos = rule.parse(self, content, pos, excluded)
                if node is not None and new_pos > pos:
                    nodes.append(node)
                    pos = new_pos
                    break
            else:
                # Unreachable with the text rule in place, keep the character anyway
                nodes.append(MDText(content[pos]))
                pos += 1

        return self._merge_adjacent_text_nodes(nodes)

    def _merge_adjacent_text_nodes(self, nodes: List[MarkdownNode]) -> Tuple[MarkdownNode, ...]:
        """Merge adjacent text nodes into single nodes."""
        merged: List[MarkdownNode] = []
        current_text = ""

        for node in nodes:
            if isinstance(node, MDText):
                current_text += node.content
            else:
                if current_text:
                    merged.append(MDText(current_text))
                    current_text = ""
                merged.append(node)

        if current_text:
            merged.append(MDText(current_text))

        return tuple(merged)
