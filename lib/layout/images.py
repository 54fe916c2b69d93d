"""
Image helpers for the Pillow layout engine: data URI decoding, object fit,
filters and alpha-aware compositing.
"""

import base64
import io
import urllib.parse
from typing import Optional, Tuple

from PIL import Image, ImageChops, ImageColor, ImageOps

RGBA = Tuple[int, int, int, int]


def parseColor(color: Optional[str], opacity: float = 1.0) -> Optional[RGBA]:
    """Convert a CSS-like color into an RGBA tuple with opacity applied."""
    if color is None:
        return None
    rgb = ImageColor.getrgb(color)
    alpha = rgb[3] if len(rgb) == 4 else 255
    return (rgb[0], rgb[1], rgb[2], int(round(alpha * max(0.0, min(1.0, opacity)))))


def decodeDataUri(src: str) -> Image.Image:
    """
    Decode a ``data:`` URI into an RGBA image.

    Raises:
        ValueError: If src is not a data URI
    """
    if not src.startswith("data:"):
        raise ValueError(f"Expected a data URI, got {src[:32]!r}")

    header, _, payload = src.partition(",")
    if header.endswith(";base64"):
        content = base64.b64decode(payload)
    else:
        content = urllib.parse.unquote_to_bytes(payload)

    with Image.open(io.BytesIO(content)) as image:
        # Animated images are painted with their first frame
        image.seek(0)
        return image.convert("RGBA")


def fitImage(image: Image.Image, size: Tuple[int, int], objectFit: Optional[str]) -> Image.Image:
    """Scale an image into the box, cropping for ``cover`` and letterboxing otherwise."""
    width, height = max(1, size[0]), max(1, size[1])
    if objectFit == "cover":
        return ImageOps.fit(image, (width, height), Image.Resampling.LANCZOS)

    contained = ImageOps.contain(image, (width, height), Image.Resampling.LANCZOS)
    result = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    result.paste(contained, ((width - contained.width) // 2, (height - contained.height) // 2))
    return result


def grayscale(image: Image.Image) -> Image.Image:
    """Desaturate an RGBA image keeping its alpha channel."""
    gray = ImageOps.grayscale(image.convert("RGB")).convert("RGBA")
    gray.putalpha(image.getchannel("A"))
    return gray


def fadeRight(image: Image.Image, fadeFrom: float) -> Image.Image:
    """Fade an image to transparent, starting at ``fadeFrom`` of its width."""
    width, height = image.size
    start = int(width * max(0.0, min(1.0, fadeFrom)))
    span = max(1, width - start)
    ramp = [255 if x < start else max(0, 255 - (x - start) * 255 // span) for x in range(width)]

    mask = Image.new("L", (width, 1))
    mask.putdata(ramp)
    mask = mask.resize((width, height))

    result = image.copy()
    result.putalpha(ImageChops.multiply(image.getchannel("A"), mask))
    return result


def compositeAt(canvas: Image.Image, image: Image.Image, x: float, y: float) -> None:
    """Alpha-composite image onto canvas, clipping at the canvas edges."""
    left, top = int(round(x)), int(round(y))
    cropLeft, cropTop = max(0, -left), max(0, -top)
    if cropLeft or cropTop:
        if cropLeft >= image.width or cropTop >= image.height:
            return
        image = image.crop((cropLeft, cropTop, image.width, image.height))
        left, top = left + cropLeft, top + cropTop
    if left >= canvas.width or top >= canvas.height:
        return
    if left + image.width > canvas.width or top + image.height > canvas.height:
        image = image.crop((0, 0, min(image.width, canvas.width - left), min(image.height, canvas.height - top)))
    canvas.alpha_composite(image, (left, top))
