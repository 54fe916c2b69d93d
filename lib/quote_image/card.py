"""
Quote card layout: avatar on the left, message and author on the right.
"""

from lib.layout import PRIMARY_FAMILY, Box, BoxKind, ImageNode, Style, TextRun, edges

CARD_STYLE = Style(
    direction="row",
    width="100%",
    height="100%",
    alignItems="center",
    backgroundColor="#000000",
    color="#fafafa",
    fontFamily=PRIMARY_FAMILY,
    fontSize=32,
)
AVATAR_STYLE = Style(width="40%", height="100%", objectFit="cover", grayscale=True, fadeFrom=0.7)
BODY_STYLE = Style(direction="column", width="60%", padding=edges(32), alignItems="center")
CONTENT_STYLE = Style(width="100%", textAlign="left")
AUTHOR_STYLE = Style(direction="column", alignItems="center", marginTop=24, gap=4)
NAME_STYLE = Style(fontSize=24, textAlign="center")
HANDLE_STYLE = Style(fontSize=20, textAlign="center", opacity=0.65)


def buildQuoteCard(iconSrc: str, content: Box, name: str, handle: str) -> Box:
    """
    Compose the quote card around a rendered message.

    Args:
        iconSrc: Avatar data URI
        content: Rendered message tree
        name: Author display name
        handle: Author handle, painted with a leading ``@``
    """
    author = Box(
        BoxKind.BLOCK,
        AUTHOR_STYLE,
        (
            Box(BoxKind.FLOW, NAME_STYLE, (TextRun(name),)),
            Box(BoxKind.FLOW, HANDLE_STYLE, (TextRun(f"@{handle}"),)),
        ),
    )
    body = Box(BoxKind.BLOCK, BODY_STYLE, (Box(BoxKind.BLOCK, CONTENT_STYLE, (content,)), author))
    return Box(BoxKind.BLOCK, CARD_STYLE, (ImageNode(iconSrc, AVATAR_STYLE), body))
