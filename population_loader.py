"""
Load vector inputs for the population relief.

Reads the population hexagon grid and the administrative boundaries and
reprojects both to one planar CRS.
"""

from pathlib import Path
from typing import Iterable, Tuple

import geopandas as gpd
from pyproj import CRS
from pyproj.exceptions import CRSError


class MissingColumnError(ValueError):
    """Input layer lacks an attribute column the pipeline needs."""


def load_layer(
    path: Path,
    target_crs: str,
    required_columns: Iterable[str] = (),
) -> gpd.GeoDataFrame:
    """
    Read a vector file and reproject it.

    Args:
        path: Vector file (GeoPackage, GeoJSON, shapefile, ...)
        target_crs: CRS identifier to reproject to (e.g. "EPSG:3857")
        required_columns: Attribute columns that must be present

    Returns:
        GeoDataFrame in ``target_crs``

    Raises:
        ValueError: If ``target_crs`` is not a valid CRS (checked before reading)
    """
    try:
        crs = CRS.from_user_input(target_crs)
    except CRSError as e:
        raise ValueError(f"Invalid target CRS {target_crs!r}: {e}") from e

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input layer not found at {path}")

    print(f"  Reading {path.name}...")
    gdf = gpd.read_file(path)

    missing = [col for col in required_columns if col not in gdf.columns]
    if missing:
        raise MissingColumnError(
            f"{path.name} is missing column(s) {', '.join(missing)}; "
            f"available: {', '.join(c for c in gdf.columns if c != gdf.geometry.name)}"
        )

    if gdf.crs is None:
        raise ValueError(f"{path.name} has no CRS, cannot reproject to {target_crs}")

    gdf = gdf.to_crs(crs)
    print(f"    {len(gdf)} features, CRS {target_crs}")
    return gdf


def load_inputs(
    population_path: Path,
    boundaries_path: Path,
    target_crs: str,
    population_field: str = "population",
    name_field: str = "adm0_en",
) -> Tuple[gpd.GeoDataFrame, gpd.GeoDataFrame]:
    """
    Load both pipeline inputs into a common CRS.

    Returns:
        Tuple of (population grid, administrative boundaries)
    """
    population = load_layer(population_path, target_crs, [population_field])
    boundaries = load_layer(boundaries_path, target_crs, [name_field])
    return population, boundaries
