"""
Font registry for the Pillow layout engine.
"""

import io
import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from .style import MONO_FAMILY, PRIMARY_FAMILY

logger = logging.getLogger(__name__)

# Weight from which a face is considered bold
BOLD_WEIGHT = 600

# Families consulted, in order, for glyphs a family can not draw
FALLBACK_FAMILIES: Mapping[str, Sequence[str]] = {MONO_FAMILY: (PRIMARY_FAMILY,)}

# Unassigned code point, every font draws it with its .notdef glyph
NOTDEF_CHAR = "\U0010ffff"

Font = ImageFont.FreeTypeFont


@dataclass(frozen=True)
class FontResource:
    """Font file registered under a family name and weight."""

    name: str
    data: bytes
    weight: int = 400


def glyphSignature(font: Font, char: str) -> Tuple[Tuple[int, int], bytes]:
    """Size and pixels of a single rendered character."""
    left, top, right, bottom = font.getbbox(char)
    image = Image.new("L", (max(1, int(right - left)), max(1, int(bottom - top))), 0)
    ImageDraw.Draw(image).text((-left, -top), char, font=font, fill=255)
    return image.size, image.tobytes()


class FontBook:
    """
    Resolves (family, weight, size) into Pillow fonts.

    Unknown families fall back to the first registered family, picking the
    face with the closest weight. Without any registered font Pillow's
    built-in font is used.

    A family may name fallback families; ``fontFor`` picks the first family
    of that chain whose font has a glyph for a given character.
    """

    def __init__(self, fonts: Sequence[FontResource], fallbacks: Optional[Mapping[str, Sequence[str]]] = None):
        self._families: Dict[str, List[FontResource]] = {}
        for font in fonts:
            self._families.setdefault(font.name, []).append(font)
        self._defaultFamily: Optional[str] = fonts[0].name if fonts else None
        self._fallbacks = dict(FALLBACK_FAMILIES if fallbacks is None else fallbacks)
        self._cache: Dict[Tuple[str, int, int], Font] = {}
        self._coverage: Dict[Tuple[int, str], bool] = {}
        self._notdef: Dict[int, Tuple[Tuple[int, int], bytes]] = {}

    @property
    def families(self) -> List[str]:
        return list(self._families)

    def _face(self, family: Optional[str], weight: int) -> Optional[FontResource]:
        faces = self._families.get(family or "") or self._families.get(self._defaultFamily or "")
        if not faces:
            return None
        return min(faces, key=lambda face: (abs(face.weight - weight), -face.weight))

    def loadFont(self, face: Optional[FontResource], size: int) -> Font:
        """Instantiate a face at a pixel size, Pillow's built-in font for None."""
        if face is None:
            return ImageFont.load_default(size=size)
        return ImageFont.truetype(io.BytesIO(face.data), size=size)

    def getFont(self, family: Optional[str], weight: int, size: int) -> Font:
        """Get a font for the family and weight at the given pixel size."""
        size = max(1, int(round(size)))
        face = self._face(family, weight)
        key = (face.name if face else "", face.weight if face else 0, size)
        font = self._cache.get(key)
        if font is None:
            font = self.loadFont(face, size)
            self._cache[key] = font
        return font

    def familyChain(self, family: Optional[str]) -> List[Optional[str]]:
        """The family followed by its registered fallback families."""
        chain: List[Optional[str]] = [family]
        for fallback in self._fallbacks.get(family or self._defaultFamily or "", ()):
            if fallback in self._families and fallback not in chain:
                chain.append(fallback)
        return chain

    def hasGlyph(self, font: Font, cluster: str) -> bool:
        """True when the font draws the cluster's base character with a real glyph."""
        key = (id(font), cluster)
        covered = self._coverage.get(key)
        if covered is None:
            notdef = self._notdef.get(id(font))
            if notdef is None:
                notdef = glyphSignature(font, NOTDEF_CHAR)
                self._notdef[id(font)] = notdef
            covered = glyphSignature(font, cluster[0]) != notdef
            self._coverage[key] = covered
        return covered

    def fontFor(self, family: Optional[str], weight: int, size: int, cluster: str) -> Tuple[Font, Optional[str]]:
        """
        Font able to draw a grapheme cluster, and the family it belongs to.

        Falls back to the requested family's own font when no family of the
        chain has the glyph.
        """
        chain = self.familyChain(family)
        if len(chain) > 1:
            for candidate in chain:
                font = self.getFont(candidate, weight, size)
                if self.hasGlyph(font, cluster):
                    return font, candidate
        return self.getFont(family, weight, size), family

    def needsSyntheticBold(self, family: Optional[str], weight: int) -> bool:
        """True when bold text is requested but only regular faces exist."""
        if weight < BOLD_WEIGHT:
            return False
        face = self._face(family, weight)
        return face is None or face.weight < BOLD_WEIGHT
