"""
Line break normalizer for Quotebot Markdown Parser

Chat messages use single line breaks as visual line breaks, while the block
parser joins consecutive lines into one paragraph. Before parsing, every
non-blank line outside a code fence gets an extra line break, so each line
becomes a paragraph of its own. Fenced code is copied as is.
"""

import re

FENCE_MARKER = "```"

_LINE_BREAK_PATTERN = re.compile(r"\r\n?")


def normalize_line_breaks(text: str) -> str:
    """
    Normalize line breaks of raw message text.

    Args:
        text: Raw message text, any of ``\\r\\n``, ``\\r``, ``\\n`` line endings

    Returns:
        Text with ``\\n`` line endings where every non-blank line outside
        code fences is followed by a blank line
    """
    lines = _LINE_BREAK_PATTERN.sub("\n", text).split("\n")
    inFence = False
    out = []

    for line in lines:
        if line.startswith(FENCE_MARKER):
            inFence = not inFence
            out.append(line)
            continue

        if inFence or line == "":
            out.append(line)
            continue

        out.append(line + "\n")

    return "\n".join(out)
