"""
Helpers for Discord user mentions in raw message text.
"""

import re
from typing import List

from .inline_parser import MENTION_PATTERN

_MENTION_RE = re.compile(MENTION_PATTERN)


def extract_mention_user_ids(text: str) -> List[str]:
    """
    Collect the user ids mentioned in a text.

    Args:
        text: Raw message text

    Returns:
        Unique user ids in order of first appearance
    """
    return list(dict.fromkeys(match.group(1) for match in _MENTION_RE.finditer(text)))
