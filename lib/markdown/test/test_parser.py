"""
Test Suite for the Quotebot Markdown Parser

Covers block structure, the inline rule table with the Discord specific
rules (mentions, custom emoji, spoilers) and graceful degradation of
unknown syntax.
"""

import dataclasses
import os
import sys
import unittest

# Add the project root to the path so we can import the markdown module
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "..", ".."))

from lib.markdown import (  # noqa: E402
    DEFAULT_RULES,
    InlineParser,
    MarkdownParser,
    Tokenizer,
    extract_mention_user_ids,
    parse_markdown,
)
from lib.markdown.ast_nodes import (  # noqa: E402
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
    ast_to_dict,
)
from lib.markdown.inline_parser import MENTION_RULE, SPOILER_RULE, TEXT_RULE  # noqa: E402
from lib.markdown.tokenizer import TokenType  # noqa: E402


def inline(text: str):
    """Parse a single paragraph and return its inline children."""
    ast = parse_markdown(text)
    assert len(ast) == 1 and isinstance(ast[0], MDParagraph), ast
    return ast[0].children


class TestTokenizer(unittest.TestCase):
    """Test the tokenizer component."""

    def test_basic_tokenization(self):
        """Text, space and EOF tokens."""
        tokens = Tokenizer("Hello world").tokenize()

        self.assertEqual(
            [token.type for token in tokens],
            [TokenType.TEXT, TokenType.SPACE, TokenType.TEXT, TokenType.EOF],
        )
        self.assertEqual(tokens[0].content, "Hello")

    def test_block_markers_only_at_line_start(self):
        """A hash in the middle of a line is not a header marker."""
        types = [token.type for token in Tokenizer("a # b\n# c").tokenize()]

        self.assertEqual(types.count(TokenType.HEADER_MARKER), 1)

    def test_positions(self):
        """Tokens carry line and column."""
        tokens = Tokenizer("a\nbc").tokenize()

        self.assertEqual((tokens[2].line, tokens[2].column), (2, 1))


class TestBlockParsing(unittest.TestCase):
    """Test block level elements."""

    def test_paragraphs_per_line_with_normalization(self):
        """Normalized chat lines become separate paragraphs."""
        parser = MarkdownParser({"normalize_line_breaks": True})
        ast = parser.parse("first\nsecond")

        self.assertEqual(ast, (MDParagraph((MDText("first"),)), MDParagraph((MDText("second"),))))

    def test_soft_line_break_becomes_space(self):
        """Without normalization consecutive lines join."""
        self.assertEqual(parse_markdown("first\nsecond"), (MDParagraph((MDText("first second"),)),))

    def test_preserve_soft_line_breaks(self):
        """Soft line breaks can be kept."""
        ast = parse_markdown("first\nsecond", preserve_soft_line_breaks=True)

        self.assertEqual(ast, (MDParagraph((MDText("first\nsecond"),)),))

    def test_headings(self):
        """Heading levels are kept."""
        ast = parse_markdown("# One\n\n## Two\n\n###### Six")

        self.assertEqual(
            ast,
            (
                MDHeading(1, (MDText("One"),)),
                MDHeading(2, (MDText("Two"),)),
                MDHeading(6, (MDText("Six"),)),
            ),
        )

    def test_hash_without_space_is_text(self):
        """#tag is not a heading."""
        self.assertEqual(parse_markdown("#tag"), (MDParagraph((MDText("#tag"),)),))

    def test_fenced_code_block(self):
        """Code block content is verbatim, language is captured."""
        ast = parse_markdown("```python\nline1\n\n  line2\n```")

        self.assertEqual(ast, (MDCodeBlock("line1\n\n  line2", "python"),))

    def test_tilde_fence(self):
        """Tilde fences are supported."""
        self.assertEqual(parse_markdown("~~~\ncode\n~~~"), (MDCodeBlock("code", None),))

    def test_block_quote(self):
        """Quoted lines form a block quote with nested blocks."""
        ast = MarkdownParser({"normalize_line_breaks": True}).parse("> quoted\n> **more**")

        self.assertEqual(
            ast,
            (
                MDBlockQuote(
                    (
                        MDParagraph((MDText("quoted"),)),
                        MDParagraph((MDStrong((MDText("more"),)),)),
                    )
                ),
            ),
        )

    def test_nesting_depth_limit(self):
        """Quotes deeper than max_nesting_depth stay paragraph text."""
        nested = parse_markdown("> > deep")
        limited = parse_markdown("> > deep", max_nesting_depth=1)

        self.assertIsInstance(nested[0].children[0], MDBlockQuote)
        self.assertIsInstance(limited[0], MDBlockQuote)
        self.assertEqual(len(limited[0].children), 1)
        self.assertIsInstance(limited[0].children[0], MDParagraph)
        self.assertIn("deep", str(ast_to_dict(limited)))

    def test_paragraph_text_is_stripped(self):
        """Leading and trailing spaces of a paragraph are dropped."""
        self.assertEqual(parse_markdown("hello   "), (MDParagraph((MDText("hello"),)),))

    def test_unordered_list(self):
        """Items of a normalized list stay in one list."""
        ast = MarkdownParser({"normalize_line_breaks": True}).parse("- a\n- b")

        self.assertEqual(
            ast,
            (MDList(((MDParagraph((MDText("a"),)),), (MDParagraph((MDText("b"),)),)), ordered=False),),
        )

    def test_ordered_list_start_number(self):
        """Ordered lists remember their first number."""
        ast = parse_markdown("3. x\n4. y")

        self.assertEqual(len(ast), 1)
        self.assertTrue(ast[0].ordered)
        self.assertEqual(ast[0].start_number, 3)
        self.assertEqual(len(ast[0].items), 2)

    def test_ast_to_dict(self):
        """AST is serializable."""
        result = ast_to_dict(parse_markdown("Hi <@1>"))

        self.assertEqual(result[0]["type"], "paragraph")
        self.assertEqual(result[0]["children"][1], {"type": "mention", "user_id": "1"})

    def test_non_string_input(self):
        """Only strings can be parsed."""
        with self.assertRaises(ValueError):
            MarkdownParser().parse(None)  # type: ignore[arg-type]


class TestDiscordInlineRules(unittest.TestCase):
    """Test mentions, custom emoji and spoilers."""

    def test_mention(self):
        """Both mention forms carry the user id."""
        self.assertEqual(
            inline("Hello <@123> and <@!999>"),
            (MDText("Hello "), MDMention("123"), MDText(" and "), MDMention("999")),
        )

    def test_custom_emoji(self):
        """Static and animated custom emoji."""
        self.assertEqual(
            inline("hi <:smile:42> and <a:dance:43>"),
            (
                MDText("hi "),
                MDCustomEmoji("42", "smile", False),
                MDText(" and "),
                MDCustomEmoji("43", "dance", True),
            ),
        )

    def test_spoiler(self):
        """Spoiler content is parsed recursively."""
        self.assertEqual(
            inline("This is ||**secret**|| text"),
            (MDText("This is "), MDSpoiler((MDStrong((MDText("secret"),)),)), MDText(" text")),
        )

    def test_spoiler_inside_emphasis(self):
        """Discord rules work inside emphasis."""
        self.assertEqual(inline("*<@1>*"), (MDEmphasis((MDMention("1"),)),))

    def test_extract_mention_user_ids(self):
        """Unique ids in order of first appearance."""
        self.assertEqual(extract_mention_user_ids("<@2> <@!1> <@2> <@x>"), ["2", "1"])
        self.assertEqual(extract_mention_user_ids("nobody"), [])


class TestBaseInlineRules(unittest.TestCase):
    """Test the generic markdown inline rules."""

    def test_emphasis_variants(self):
        """Strong, em and strikethrough."""
        self.assertEqual(
            inline("**b** _e_ ~~d~~ __u__ *i*"),
            (
                MDStrong((MDText("b"),)),
                MDText(" "),
                MDEmphasis((MDText("e"),)),
                MDText(" "),
                MDStrikethrough((MDText("d"),)),
                MDText(" "),
                MDStrong((MDText("u"),)),
                MDText(" "),
                MDEmphasis((MDText("i"),)),
            ),
        )

    def test_strong_emphasis(self):
        """Triple delimiters nest em inside strong."""
        self.assertEqual(inline("***x***"), (MDStrong((MDEmphasis((MDText("x"),)),)),))

    def test_snake_case_stays_text(self):
        """Intraword underscores are not emphasis."""
        self.assertEqual(inline("snake_case_name"), (MDText("snake_case_name"),))

    def test_link(self):
        """Inline link with title."""
        self.assertEqual(
            inline('[docs](https://example.com "Docs")'),
            (MDLink((MDText("docs"),), target="https://example.com", title="Docs"),),
        )

    def test_autolink(self):
        """URL and email autolinks."""
        self.assertEqual(
            inline("<https://example.com>"),
            (MDLink((MDText("https://example.com"),), target="https://example.com"),),
        )
        self.assertEqual(
            inline("<me@example.com>"),
            (MDLink((MDText("me@example.com"),), target="mailto:me@example.com"),),
        )

    def test_no_nested_links(self):
        """Link text does not contain links."""
        children = inline("[see <https://a.b>](https://c.d)")

        self.assertEqual(children, (MDLink((MDText("see <https://a.b>"),), target="https://c.d"),))

    def test_escape(self):
        """Backslash makes the next character literal."""
        self.assertEqual(inline("\\*not em\\*"), (MDText("*not em*"),))

    def test_inline_code(self):
        """Code span content is literal."""
        self.assertEqual(inline("run `ls -la` now"), (MDText("run "), MDInlineCode("ls -la"), MDText(" now")))


class TestDegradation(unittest.TestCase):
    """Unknown or broken syntax renders as literal text."""

    def test_malformed_discord_syntax(self):
        """Non numeric ids, missing ids and lone pipes."""
        self.assertEqual(inline("<@abc>"), (MDText("<@abc>"),))
        self.assertEqual(inline("<:x:>"), (MDText("<:x:>"),))
        self.assertEqual(inline("a || b"), (MDText("a || b"),))

    def test_unclosed_emphasis(self):
        """Unclosed delimiters stay literal."""
        self.assertEqual(inline("**open"), (MDText("**open"),))

    def test_image_degrades_to_link(self):
        """Images are not part of the dialect."""
        self.assertEqual(inline("![alt](pic.png)"), (MDText("!"), MDLink((MDText("alt"),), target="pic.png")))

    def test_horizontal_rule_is_text(self):
        """Thematic breaks are not part of the dialect."""
        self.assertEqual(parse_markdown("***"), (MDParagraph((MDText("***"),)),))

    def test_syntax_inside_inline_code_is_literal(self):
        """Mentions, emoji and spoilers are not parsed in code spans."""
        self.assertEqual(inline("`<@123> <:e:1> ||x||`"), (MDInlineCode("<@123> <:e:1> ||x||"),))

    def test_syntax_inside_code_block_is_literal(self):
        """Mentions, emoji and spoilers are not parsed in code blocks."""
        ast = MarkdownParser({"normalize_line_breaks": True}).parse("```\n<@1> <a:e:2> ||s||\n```")

        self.assertEqual(ast, (MDCodeBlock("<@1> <a:e:2> ||s||", None),))


class TestRuleTable(unittest.TestCase):
    """Test rule table validation."""

    def test_default_rules_order(self):
        """Rules are tried in ascending order."""
        names = [rule.name for rule in InlineParser().rules]

        self.assertEqual(
            names,
            ["escape", "inlineCode", "autolink", "mention", "customEmoji", "link", "spoiler", "emphasis", "text"],
        )

    def test_priority_rule_after_emphasis_rejected(self):
        """Mention must precede emphasis."""
        rules = [rule for rule in DEFAULT_RULES if rule.name != "mention"]
        rules.append(dataclasses.replace(MENTION_RULE, order=70))

        with self.assertRaises(ValueError):
            InlineParser(rules)

    def test_priority_rule_after_text_rejected(self):
        """Spoiler must precede the text fallback."""
        rules = [rule for rule in DEFAULT_RULES if rule.name not in ("spoiler", "emphasis")]
        rules.append(dataclasses.replace(SPOILER_RULE, order=150))

        with self.assertRaises(ValueError):
            MarkdownParser(rules=rules)

    def test_text_rule_required(self):
        """The text fallback is mandatory."""
        with self.assertRaises(ValueError):
            InlineParser([MENTION_RULE])

    def test_duplicate_names_rejected(self):
        """Rule names are unique."""
        with self.assertRaises(ValueError):
            InlineParser([TEXT_RULE, TEXT_RULE])


if __name__ == "__main__":
    unittest.main()
