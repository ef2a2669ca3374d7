"""
Build the national boundary polygon.

Selects administrative polygons by name, dissolves them into one geometry and
repairs it so downstream bounding box and clipping steps get a valid shape.
"""

from typing import Iterable, Union

import geopandas as gpd
from shapely import make_valid
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union


class EmptyBoundaryError(ValueError):
    """Boundary selection produced no usable polygon."""


def select_features(
    gdf: gpd.GeoDataFrame,
    name_field: str,
    names: Union[str, Iterable[str]],
) -> gpd.GeoDataFrame:
    """
    Select rows whose ``name_field`` matches one of ``names``.

    Args:
        gdf: Administrative polygons
        name_field: Attribute column to match on
        names: Single name or collection of names

    Returns:
        Filtered GeoDataFrame (may be empty)
    """
    if name_field not in gdf.columns:
        raise KeyError(f"Boundary layer has no '{name_field}' column")

    if isinstance(names, str):
        names = [names]
    return gdf[gdf[name_field].isin(list(names))]


def build_boundary(
    gdf: gpd.GeoDataFrame,
    name_field: str,
    names: Union[str, Iterable[str]],
) -> BaseGeometry:
    """
    Union the selected polygons into one valid boundary.

    Args:
        gdf: Administrative polygons
        name_field: Attribute column to match on
        names: Single name or collection of names

    Returns:
        Valid, non-empty (Multi)Polygon

    Raises:
        EmptyBoundaryError: If nothing matched or the union has no area
    """
    if isinstance(names, str):
        names = [names]
    names = list(names)

    selected = select_features(gdf, name_field, names)
    if selected.empty:
        raise EmptyBoundaryError(
            f"No features with {name_field} in {names}; boundary would be empty"
        )

    print(f"  Dissolving {len(selected)} polygons...")
    parts = [make_valid(geom) for geom in selected.geometry if geom is not None]
    boundary = make_valid(unary_union(parts))

    # make_valid can return a GeometryCollection with stray lines/points
    if boundary.geom_type == "GeometryCollection":
        polygons = [g for g in boundary.geoms if g.geom_type in ("Polygon", "MultiPolygon")]
        boundary = unary_union(polygons)

    if boundary.is_empty or boundary.area == 0:
        raise EmptyBoundaryError(f"Union of {names} has zero area")

    print(f"    Boundary: {boundary.geom_type}, area {boundary.area / 1e6:,.0f} km²")
    return boundary


def clip_to_boundary(gdf: gpd.GeoDataFrame, boundary: BaseGeometry) -> gpd.GeoDataFrame:
    """
    Keep only the parts of ``gdf`` inside ``boundary``.

    Both must already share a CRS.
    """
    clipped = gpd.clip(gdf, boundary, keep_geom_type=True)
    print(f"  Clipped {len(gdf)} -> {len(clipped)} features to boundary")
    return clipped
