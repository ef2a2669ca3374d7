"""
Shared fixtures: synthetic population grid, administrative boundaries and a
stand-in plotter so render stages run without a display.
"""

import math

import geopandas as gpd
import numpy as np
import pytest
from PIL import Image
from shapely.geometry import Polygon, box

from relief_renderer import RenderContext


# Synthetic "country": 2x2 degree square split into two admin regions
SQUARE_BOUNDS = (30.0, 48.0, 32.0, 50.0)


def hexagon(cx: float, cy: float, radius: float) -> Polygon:
    """Flat-top hexagon around (cx, cy)."""
    return Polygon([
        (cx + radius * math.cos(math.pi / 3 * i), cy + radius * math.sin(math.pi / 3 * i))
        for i in range(6)
    ])


def hex_grid(bounds, cols: int, rows: int, population: float, crs: str) -> gpd.GeoDataFrame:
    """Flat-top hexagon grid covering ``bounds`` with uniform population."""
    minx, miny, maxx, maxy = bounds
    dx = (maxx - minx) / cols
    dy = (maxy - miny) / rows
    radius = max(dx, dy) * 0.6

    cells = []
    for col in range(cols):
        for row in range(rows):
            cx = minx + (col + 0.5) * dx
            cy = miny + (row + 0.5) * dy + (dy / 2 if col % 2 else 0.0)
            cells.append(hexagon(cx, cy, radius))

    return gpd.GeoDataFrame(
        {'h3': [f"cell-{i}" for i in range(len(cells))], 'population': [population] * len(cells)},
        geometry=cells,
        crs=crs,
    )


@pytest.fixture
def admin_boundaries() -> gpd.GeoDataFrame:
    """Two halves of the square country plus a neighbour, in WGS84."""
    minx, miny, maxx, maxy = SQUARE_BOUNDS
    mid = (minx + maxx) / 2
    return gpd.GeoDataFrame(
        {
            'adm0_en': ['Ukraine', 'Ukraine', 'Moldova'],
            'adm1_en': ['West', 'East', 'Chisinau'],
        },
        geometry=[
            box(minx, miny, mid, maxy),
            box(mid, miny, maxx, maxy),
            box(28.0, 46.0, 29.0, 47.0),
        ],
        crs="EPSG:4326",
    )


@pytest.fixture
def hex_population() -> gpd.GeoDataFrame:
    """10x10 uniform hexagon grid over the square country, in WGS84."""
    return hex_grid(SQUARE_BOUNDS, cols=10, rows=10, population=100.0, crs="EPSG:4326")


@pytest.fixture
def input_files(tmp_path, admin_boundaries, hex_population):
    """Write the synthetic layers to disk."""
    population_path = tmp_path / "population.gpkg"
    boundaries_path = tmp_path / "boundaries.geojson"
    hex_population.to_file(population_path, driver="GPKG")
    admin_boundaries.to_file(boundaries_path, driver="GeoJSON")
    return population_path, boundaries_path


class FakeCamera:
    def __init__(self):
        self.view_angle = 30.0
        self.zoom_factor = 1.0

    def zoom(self, value):
        self.zoom_factor *= value


class FakePlotter:
    """Records calls made by the render stage; screenshot writes a blank PNG."""

    def __init__(self, fail_screenshot: bool = False):
        self.fail_screenshot = fail_screenshot
        self.meshes = []
        self.lights = []
        self.camera = FakeCamera()
        self.camera_position = None
        self.parallel_projection = False
        self.shadows = False
        self.anti_aliasing = None
        self.closed = False

    def add_mesh(self, mesh, **kwargs):
        self.meshes.append((mesh, kwargs))

    def enable_parallel_projection(self):
        self.parallel_projection = True

    def reset_camera(self):
        pass

    def remove_all_lights(self):
        self.lights = []

    def add_light(self, light):
        self.lights.append(light)

    def enable_shadows(self):
        self.shadows = True

    def enable_anti_aliasing(self, aa_type, multi_samples=None):
        self.anti_aliasing = (aa_type, multi_samples)

    def screenshot(self, filename, window_size=None):
        if self.fail_screenshot:
            raise RuntimeError("render backend crashed")
        Image.new("RGB", tuple(window_size), (240, 240, 240)).save(filename)
        return np.zeros((window_size[1], window_size[0], 3), dtype=np.uint8)

    def close(self):
        self.closed = True


class FakeRenderContext(RenderContext):
    """RenderContext backed by FakePlotter."""

    def __init__(self, fail_screenshot: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.fail_screenshot = fail_screenshot
        self.last_plotter = None

    def _create_plotter(self):
        self.last_plotter = FakePlotter(fail_screenshot=self.fail_screenshot)
        return self.last_plotter


@pytest.fixture
def fake_context():
    return FakeRenderContext()


@pytest.fixture
def failing_context():
    return FakeRenderContext(fail_screenshot=True)


@pytest.fixture
def context_factory():
    """Build fresh fake render contexts, one per run."""
    return FakeRenderContext
