"""
Overlay text annotations (title, subtitle, credits) on the rendered relief.

Each text layer is anchored to an image corner, edge or the center
("gravity") and shifted by an ImageMagick-style offset such as "+50+50",
measured inward from the anchored edges.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

from matplotlib import font_manager
from PIL import Image, ImageDraw, ImageFont


# gravity -> (horizontal, vertical) anchor: 0 = left/top, 1 = center, 2 = right/bottom
GRAVITIES = {
    "northwest": (0, 0),
    "north": (1, 0),
    "northeast": (2, 0),
    "west": (0, 1),
    "center": (1, 1),
    "east": (2, 1),
    "southwest": (0, 2),
    "south": (1, 2),
    "southeast": (2, 2),
}

FONT_SUFFIXES = {".ttf", ".otf", ".ttc"}

OFFSET_PATTERN = re.compile(r"^([+-]\d+)([+-]\d+)$")


class FontNotFoundError(FileNotFoundError):
    """Requested font is not installed."""


@dataclass(frozen=True)
class TextLayer:
    """One text annotation."""
    text: str
    gravity: str = "northwest"
    offset: str = "+0+0"
    font: str = "DejaVu Sans"
    size: int = 48
    weight: Union[str, int] = "normal"
    color: Optional[str] = None


def parse_offset(offset: str) -> Tuple[int, int]:
    """
    Parse an offset like "+50+50" or "-10+20".

    Returns:
        (dx, dy) in pixels
    """
    if not offset:
        return (0, 0)
    match = OFFSET_PATTERN.match(offset.strip())
    if match is None:
        raise ValueError(f"Invalid offset '{offset}', expected e.g. '+50+50'")
    return (int(match.group(1)), int(match.group(2)))


def _place(anchor: int, outer: int, inner: int, delta: int) -> int:
    if anchor == 0:
        return delta
    if anchor == 1:
        return (outer - inner) // 2 + delta
    return outer - inner - delta


def gravity_position(
    gravity: str,
    image_size: Tuple[int, int],
    text_size: Tuple[int, int],
    offset: Tuple[int, int] = (0, 0),
) -> Tuple[int, int]:
    """
    Top-left pixel of a text box anchored by gravity.

    Args:
        gravity: One of GRAVITIES (case-insensitive)
        image_size: (width, height) of the image
        text_size: (width, height) of the text box
        offset: (dx, dy) moving the text away from the anchored edges

    Returns:
        (x, y) of the text box's top-left corner
    """
    key = gravity.lower()
    if key not in GRAVITIES:
        raise ValueError(f"Unknown gravity '{gravity}'. Use one of: {', '.join(GRAVITIES)}")

    horizontal, vertical = GRAVITIES[key]
    x = _place(horizontal, image_size[0], text_size[0], offset[0])
    y = _place(vertical, image_size[1], text_size[1], offset[1])
    return (x, y)


def resolve_font(name: str, weight: Union[str, int] = "normal") -> Path:
    """
    Find the font file for a family name and weight.

    A path to a font file is returned as is.

    Raises:
        FontNotFoundError: If no matching font is installed
    """
    candidate = Path(name)
    if candidate.suffix.lower() in FONT_SUFFIXES:
        if not candidate.exists():
            raise FontNotFoundError(f"Font file not found at {candidate}")
        return candidate

    properties = font_manager.FontProperties(family=name, weight=weight)
    try:
        return Path(font_manager.findfont(properties, fallback_to_default=False))
    except ValueError as e:
        raise FontNotFoundError(f"Font '{name}' (weight {weight}) is not installed") from e


def annotate_image(
    source: Path,
    layers: Iterable[TextLayer],
    output: Path,
    color: str = "#000000",
) -> Path:
    """
    Draw text layers onto an image and save the result.

    Args:
        source: Rendered image
        layers: Text layers, drawn in order
        output: Path of the annotated image
        color: Text color for layers without their own

    Returns:
        Path to the annotated image
    """
    source = Path(source)
    output = Path(output)
    if not source.exists():
        raise FileNotFoundError(f"Image to annotate not found at {source}")

    with Image.open(source) as img:
        image = img.convert("RGBA")
    draw = ImageDraw.Draw(image)

    for layer in layers:
        font = ImageFont.truetype(str(resolve_font(layer.font, layer.weight)), layer.size)
        left, top, right, bottom = draw.textbbox((0, 0), layer.text, font=font, anchor="la")
        x, y = gravity_position(
            layer.gravity, image.size, (right - left, bottom - top), parse_offset(layer.offset)
        )
        draw.text((x - left, y - top), layer.text, font=font, fill=layer.color or color, anchor="la")
        print(f"  Added '{layer.text}' at {layer.gravity} {layer.offset}")

    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix.lower() in (".jpg", ".jpeg"):
        image = image.convert("RGB")
    image.save(output)
    print(f"  Saved: {output}")
    return output
