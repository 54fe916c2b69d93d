"""
Style records for visual nodes.

A ``Style`` is an immutable bag of presentation properties, loosely modelled
after the CSS subset the quote card needs. ``None`` means "not set": for
inherited properties the value comes from the parent, for the rest the
engine default applies.
"""

from dataclasses import dataclass, fields, replace
from typing import Optional, Tuple, Union

# Pixels (int), percentage of the containing box ("40%") or font-relative ("1.2em")
Length = Union[int, str]
Edges = Tuple[int, int, int, int]

# Font family roles, fonts are registered with the engine under these names
PRIMARY_FAMILY = "primary"
MONO_FAMILY = "mono"

INHERITED_FIELDS = (
    "fontFamily",
    "fontSize",
    "fontWeight",
    "italic",
    "color",
    "opacity",
    "lineHeight",
    "textAlign",
    "textDecoration",
    "preserveWhitespace",
)


def edges(vertical: int, horizontal: Optional[int] = None) -> Edges:
    """Build (top, right, bottom, left) edges CSS-shorthand style."""
    if horizontal is None:
        horizontal = vertical
    return (vertical, horizontal, vertical, horizontal)


@dataclass(frozen=True)
class Style:
    """Presentation properties of a visual node."""

    # Box layout
    direction: Optional[str] = None  # "column" | "row"
    alignItems: Optional[str] = None  # "stretch" | "start" | "center"
    gap: Optional[int] = None
    padding: Optional[Edges] = None
    width: Optional[Length] = None
    height: Optional[Length] = None
    flexGrow: Optional[float] = None
    marginTop: Optional[int] = None
    marginRight: Optional[int] = None

    # Decoration
    backgroundColor: Optional[str] = None
    borderWidth: Optional[int] = None
    borderColor: Optional[str] = None
    borderLeftWidth: Optional[int] = None
    borderRadius: Optional[int] = None

    # Text, inherited
    fontFamily: Optional[str] = None
    fontSize: Optional[int] = None
    fontWeight: Optional[int] = None
    italic: Optional[bool] = None
    color: Optional[str] = None
    opacity: Optional[float] = None
    lineHeight: Optional[float] = None
    textAlign: Optional[str] = None  # "left" | "center"
    textDecoration: Optional[str] = None  # "underline" | "line-through"
    preserveWhitespace: Optional[bool] = None

    # Images
    objectFit: Optional[str] = None  # "contain" | "cover"
    grayscale: Optional[bool] = None
    fadeFrom: Optional[float] = None  # fraction of width where fading to transparent starts

    def merged(self, other: "Style") -> "Style":
        """Return a copy where every property set in ``other`` overrides this one."""
        overrides = {f.name: getattr(other, f.name) for f in fields(other) if getattr(other, f.name) is not None}
        return replace(self, **overrides)

    def inherit(self, parent: "Style") -> "Style":
        """Fill unset inherited properties from the parent's computed style."""
        inherited = {
            name: getattr(parent, name)
            for name in INHERITED_FIELDS
            if getattr(self, name) is None and getattr(parent, name) is not None
        }
        return replace(self, **inherited) if inherited else self


EMPTY_STYLE = Style()
