"""
Aspect ratio of the boundary.

Measures the boundary's bounding box in the planar CRS and turns it into
width/height ratios used to size the raster.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from shapely.geometry import Point
from shapely.geometry.base import BaseGeometry


# Height ratio used when the boundary is at least as tall as it is wide (not 1.0)
HEIGHT_RATIO_BIAS = 1.1


@dataclass(frozen=True)
class AspectRatio:
    """Planar extent of the boundary and the derived raster ratios."""
    width: float
    height: float
    width_ratio: float
    height_ratio: float


def bounding_box(geometry: BaseGeometry) -> Tuple[float, float, float, float]:
    """
    Get (minx, miny, maxx, maxy) of a non-empty geometry.
    """
    if geometry.is_empty:
        raise ValueError("Cannot take the bounding box of an empty geometry")
    minx, miny, maxx, maxy = geometry.bounds
    return (minx, miny, maxx, maxy)


def corner_points(bbox: Tuple[float, float, float, float]) -> Dict[str, Point]:
    """Build the four bounding box corners."""
    minx, miny, maxx, maxy = bbox
    return {
        'bottom_left': Point(minx, miny),
        'bottom_right': Point(maxx, miny),
        'top_left': Point(minx, maxy),
        'top_right': Point(maxx, maxy),
    }


def aspect_from_extent(width: float, height: float) -> AspectRatio:
    """
    Apply the ratio policy to a planar width and height.

    Wider than tall: width_ratio = 1, height_ratio = height / width.
    Otherwise (including square): height_ratio = 1.1, width_ratio = width / height.
    """
    if width <= 0 and height <= 0:
        raise ValueError("Boundary has zero width and height")

    if width > height:
        return AspectRatio(width, height, 1.0, height / width)
    return AspectRatio(width, height, width / height, HEIGHT_RATIO_BIAS)


def compute_aspect_ratio(geometry: BaseGeometry) -> AspectRatio:
    """
    Measure a boundary and derive its raster ratios.

    Width is the bottom edge of the bounding box, height its left edge,
    both as planar distances in the geometry's CRS units.
    """
    corners = corner_points(bounding_box(geometry))
    width = corners['bottom_left'].distance(corners['bottom_right'])
    height = corners['bottom_left'].distance(corners['top_left'])

    aspect = aspect_from_extent(width, height)
    print(f"  Extent: {width:,.0f} x {height:,.0f} "
          f"-> ratios w={aspect.width_ratio:.3f}, h={aspect.height_ratio:.3f}")
    return aspect
