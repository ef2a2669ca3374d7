"""
Rasterize the population hexagon grid into a height matrix.

The raster covers the population layer's total bounds at a resolution derived
from the boundary aspect ratio. Rasterization and the matrix share one
RasterDimensions object so rows and columns can never be swapped between them.
"""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Tuple

import geopandas as gpd
import numpy as np
from rasterio.features import rasterize
from rasterio.transform import from_bounds

from aspect_calculator import AspectRatio


@dataclass(frozen=True)
class RasterDimensions:
    """Raster size in cells. Row 0 is the northern edge."""
    rows: int
    cols: int

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.rows, self.cols)

    @property
    def size(self) -> int:
        return self.rows * self.cols


@dataclass
class HeightMatrix:
    """
    Dense population matrix (rows x cols, float32, NaN = no data).

    Attributes:
        values: 2D array shaped like ``dimensions``
        dimensions: Raster size the values were produced at
        bounds: (minx, miny, maxx, maxy) covered by the raster, in CRS units
    """
    values: np.ndarray
    dimensions: RasterDimensions
    bounds: Tuple[float, float, float, float]

    def __post_init__(self):
        if self.values.shape != self.dimensions.shape:
            raise ValueError(
                f"Matrix shape {self.values.shape} does not match raster "
                f"dimensions {self.dimensions.shape}"
            )

    @classmethod
    def from_flat(
        cls,
        flat_values: Sequence[float],
        dimensions: RasterDimensions,
        bounds: Tuple[float, float, float, float],
    ) -> "HeightMatrix":
        """
        Reshape raster values (row-major, north to south) into a matrix.
        """
        flat = np.asarray(flat_values, dtype=np.float32)
        if flat.size != dimensions.size:
            raise ValueError(
                f"Got {flat.size} raster values for {dimensions.rows}x{dimensions.cols} grid"
            )
        return cls(flat.reshape(dimensions.shape, order="C"), dimensions, bounds)

    @property
    def valid_cells(self) -> int:
        """Number of cells holding a population value."""
        return int(np.count_nonzero(~np.isnan(self.values)))

    @property
    def max_value(self) -> float:
        if self.valid_cells == 0:
            return 0.0
        return float(np.nanmax(self.values))


def raster_dimensions(size: int, aspect: AspectRatio) -> RasterDimensions:
    """
    Compute raster dimensions from a base size and the aspect ratios.

    cols = floor(size * width_ratio), rows = floor(size * height_ratio)
    """
    if not isinstance(size, (int, np.integer)) or size <= 0:
        raise ValueError(f"Raster size must be a positive integer, got {size!r}")

    cols = math.floor(size * aspect.width_ratio)
    rows = math.floor(size * aspect.height_ratio)
    if rows < 1 or cols < 1:
        raise ValueError(
            f"Raster of {rows}x{cols} cells is empty; increase raster size ({size})"
        )
    return RasterDimensions(rows=rows, cols=cols)


def rasterize_population(
    gdf: gpd.GeoDataFrame,
    dimensions: RasterDimensions,
    value_field: str = "population",
    all_touched: bool = False,
) -> HeightMatrix:
    """
    Burn a population attribute into a regular grid.

    Args:
        gdf: Population features (hexagons) in a planar CRS
        dimensions: Output raster size
        value_field: Attribute holding the cell values
        all_touched: Burn every cell a feature touches, not only cells whose
            center falls inside it

    Returns:
        HeightMatrix over the layer's total bounds
    """
    if gdf.empty:
        raise ValueError("No population features to rasterize")
    if value_field not in gdf.columns:
        raise KeyError(f"Population layer has no '{value_field}' column")

    minx, miny, maxx, maxy = (float(v) for v in gdf.total_bounds)
    transform = from_bounds(minx, miny, maxx, maxy, dimensions.cols, dimensions.rows)

    gdf = gdf[gdf[value_field].notna()]

    print(f"  Rasterizing {len(gdf)} features to {dimensions.cols}x{dimensions.rows} grid...")
    shapes = (
        (geom, float(value))
        for geom, value in zip(gdf.geometry, gdf[value_field])
        if geom is not None and not geom.is_empty
    )
    raster = rasterize(
        shapes,
        out_shape=dimensions.shape,
        transform=transform,
        fill=np.nan,
        dtype="float32",
        all_touched=all_touched,
    )

    matrix = HeightMatrix.from_flat(raster.ravel(order="C"), dimensions, (minx, miny, maxx, maxy))
    print(f"    {matrix.valid_cells:,} populated cells ({100 * matrix.valid_cells / dimensions.size:.1f}%), "
          f"max {matrix.max_value:,.0f}")
    return matrix


def save_height_matrix(matrix: HeightMatrix, path: Path) -> Path:
    """Cache a height matrix as .npz."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(
        path,
        values=matrix.values,
        shape=np.array(matrix.dimensions.shape),
        bounds=np.array(matrix.bounds, dtype=np.float64),
    )
    print(f"  Saved height matrix cache to {path}")
    return path


def load_height_matrix(path: Path) -> HeightMatrix:
    """Load a height matrix cached by save_height_matrix."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Height matrix cache not found at {path}")

    with np.load(path) as data:
        rows, cols = (int(v) for v in data["shape"])
        bounds = tuple(float(v) for v in data["bounds"])
        values = data["values"].astype(np.float32)

    print(f"  Loaded cached height matrix ({cols}x{rows}) from {path}")
    return HeightMatrix(values, RasterDimensions(rows=rows, cols=cols), bounds)
