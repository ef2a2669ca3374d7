"""
Shade the height matrix and render it as a 3D relief.

The matrix is colored through a color ramp, turned into a pyvista surface with
vertical exaggeration, lit by directional lights and rendered off-screen to a
PNG. The pyvista plotter lives inside an explicit RenderContext instead of a
process-wide viewer.
"""

import math
import os
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pyvista as pv
from matplotlib.colors import LightSource, ListedColormap, Normalize
from PIL import Image

from population_rasterizer import HeightMatrix


# Gap between the relief base and the shadow plane, in cell units
SHADOW_PLANE_GAP = 0.5

# Upper bound on multi-sample anti-aliasing supported by common GPUs
MAX_MULTI_SAMPLES = 16

# Default solid base thickness relative to the longer raster side
SOLID_BASE_FRACTION = 0.02


class RenderError(RuntimeError):
    """High-quality render failed; the output path was left untouched."""


@dataclass(frozen=True)
class CameraSettings:
    """
    Virtual camera.

    Attributes:
        theta: Azimuth in degrees (0 = looking north from the south)
        phi: Elevation above the horizon in degrees (90 = straight down)
        zoom: Zoom factor, values below 1 move closer
        fov: Field of view in degrees, 0 for orthographic projection
    """
    theta: float = 0.0
    phi: float = 45.0
    zoom: float = 1.0
    fov: float = 0.0


@dataclass(frozen=True)
class LightSettings:
    """
    Directional lights sharing one compass direction.

    One light is created per altitude; colors and intensities pair with the
    altitudes by position.
    """
    direction: float = 315.0
    altitudes: Sequence[float] = (45.0,)
    colors: Sequence[str] = ("white",)
    intensities: Sequence[float] = (1.0,)

    def __post_init__(self):
        counts = {len(self.altitudes), len(self.colors), len(self.intensities)}
        if len(counts) != 1:
            raise ValueError(
                f"Light altitudes ({len(self.altitudes)}), colors ({len(self.colors)}) "
                f"and intensities ({len(self.intensities)}) must have the same length"
            )
        if not self.altitudes:
            raise ValueError("At least one light is required")
        if any(i <= 0 for i in self.intensities):
            raise ValueError("Light intensities must be positive")


@dataclass(frozen=True)
class RenderSettings:
    """Output of the high-quality render."""
    output_path: Path
    width: int = 2000
    height: int = 2000
    samples: int = 16
    light: LightSettings = field(default_factory=LightSettings)


class RenderContext:
    """
    Owns the single off-screen pyvista plotter of a run.

    Use as a context manager or call open()/close() explicitly. A context can
    only be open once at a time.
    """

    def __init__(self, window_size: Tuple[int, int] = (1024, 1024), background: str = "white"):
        self.window_size = window_size
        self.background = background
        self.plotter = None
        self.scene_center: Optional[Tuple[float, float, float]] = None
        self.scene_extent: float = 0.0

    @property
    def is_open(self) -> bool:
        return self.plotter is not None

    def _create_plotter(self):
        plotter = pv.Plotter(off_screen=True, window_size=list(self.window_size))
        plotter.set_background(self.background)
        return plotter

    def open(self) -> "RenderContext":
        if self.is_open:
            raise RuntimeError("Render context is already open; close it before reopening")
        self.plotter = self._create_plotter()
        return self

    def close(self) -> None:
        if self.plotter is not None:
            self.plotter.close()
        self.plotter = None
        self.scene_center = None
        self.scene_extent = 0.0

    def require(self):
        """Get the plotter, failing if the context is not open."""
        if self.plotter is None:
            raise RuntimeError("Render context is not open")
        return self.plotter

    def __enter__(self) -> "RenderContext":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def height_shade(
    matrix: HeightMatrix,
    texture: Sequence[str],
    light_source: Optional[LightSource] = None,
    vert_exag: float = 1.0,
) -> np.ndarray:
    """
    Color a height matrix through a color ramp.

    Args:
        matrix: Population matrix
        texture: Color ramp, low values first
        light_source: Blend a hillshade from this light over the colors
        vert_exag: Vertical exaggeration used for the hillshade

    Returns:
        uint8 RGBA array (rows x cols x 4); cells without data are transparent
    """
    values = matrix.values
    valid = ~np.isnan(values)

    if valid.any():
        vmin, vmax = float(values[valid].min()), float(values[valid].max())
    else:
        vmin, vmax = 0.0, 1.0
    if vmax <= vmin:
        vmax = vmin + 1.0

    cmap = ListedColormap(list(texture)).with_extremes(bad=(0.0, 0.0, 0.0, 0.0))
    norm = Normalize(vmin=vmin, vmax=vmax)
    rgba = cmap(norm(np.ma.masked_invalid(values)))

    if light_source is not None:
        elevation = np.where(valid, values, vmin)
        shaded = light_source.shade_rgb(rgba[..., :3], elevation, vert_exag=vert_exag, blend_mode="soft")
        rgba[..., :3] = np.where(valid[..., None], shaded, rgba[..., :3])

    return (np.clip(rgba, 0.0, 1.0) * 255).round().astype(np.uint8)


def build_relief_mesh(
    matrix: HeightMatrix,
    zscale: float,
    colors: Optional[np.ndarray] = None,
    solid: bool = False,
    base_depth: Optional[float] = None,
):
    """
    Build a 3D surface from a height matrix.

    x/y are cell indices (north up), z is value / zscale, so a smaller
    zscale gives taller relief. Cells without data sit at z = 0.

    Args:
        matrix: Population matrix
        zscale: Population units per unit of height
        colors: Optional RGBA array from height_shade, stored as "rgb"
        solid: Extrude the surface down to ``base_depth`` and cap it
        base_depth: Bottom of the solid base; by default 2% of the longer
            side below the lowest point

    Returns:
        pyvista StructuredGrid (open surface) or PolyData (solid)
    """
    if zscale <= 0:
        raise ValueError(f"zscale must be positive, got {zscale}")

    rows, cols = matrix.dimensions.shape
    x = np.arange(cols, dtype=np.float32)
    y = np.arange(rows, dtype=np.float32)[::-1]
    xx, yy = np.meshgrid(x, y)
    zz = np.nan_to_num(matrix.values, nan=0.0).astype(np.float32) / zscale

    surface = pv.StructuredGrid(xx, yy, zz)
    if colors is not None:
        # StructuredGrid stores points in Fortran order
        surface.point_data["rgb"] = colors[..., :3].reshape(-1, 3, order="F")

    if not solid:
        return surface

    lowest = float(zz.min())
    if base_depth is None:
        base_depth = lowest - SOLID_BASE_FRACTION * max(rows, cols)
    elif base_depth >= lowest:
        raise ValueError(f"Solid base depth {base_depth} must lie below the relief ({lowest})")
    trim = pv.Plane(
        center=((cols - 1) / 2, (rows - 1) / 2, base_depth),
        direction=(0, 0, -1),
        i_size=cols * 2,
        j_size=rows * 2,
    )
    return surface.extract_surface(algorithm="dataset_surface").extrude_trim((0, 0, -1), trim)


def plot_3d(
    context: RenderContext,
    matrix: HeightMatrix,
    texture: Sequence[str],
    zscale: float,
    solid: bool = False,
    shadow_depth: float = 0.0,
    light_source: Optional[LightSource] = None,
    vert_exag: float = 1.0,
):
    """
    Add the shaded relief and its ground shadow plane to the render context.

    Returns:
        The relief mesh
    """
    plotter = context.require()
    rows, cols = matrix.dimensions.shape

    print(f"  Building relief mesh ({cols}x{rows}, zscale={zscale})...")
    colors = height_shade(matrix, texture, light_source=light_source, vert_exag=vert_exag)
    mesh = build_relief_mesh(matrix, zscale, colors=colors, solid=solid)
    if "rgb" in mesh.point_data:
        plotter.add_mesh(mesh, scalars="rgb", rgb=True, smooth_shading=True, lighting=True)
    else:
        plotter.add_mesh(mesh, color=texture[-1], smooth_shading=True, lighting=True)

    shadow_plane = pv.Plane(
        center=((cols - 1) / 2, (rows - 1) / 2, min(shadow_depth, mesh.bounds[4]) - SHADOW_PLANE_GAP),
        direction=(0, 0, 1),
        i_size=cols * 3,
        j_size=rows * 3,
    )
    plotter.add_mesh(shadow_plane, color=context.background, lighting=True)

    top = matrix.max_value / zscale
    context.scene_center = ((cols - 1) / 2, (rows - 1) / 2, top / 2)
    context.scene_extent = float(max(rows, cols, top))
    return mesh


def camera_position(
    center: Tuple[float, float, float],
    extent: float,
    theta: float,
    phi: float,
) -> List[Tuple[float, float, float]]:
    """
    Place a camera around ``center`` on a sphere of radius 2 * extent.

    Returns:
        pyvista camera position [position, focal point, view up]
    """
    t, p = math.radians(theta), math.radians(phi)
    distance = 2.0 * extent
    cx, cy, cz = center
    position = (
        cx + distance * math.sin(t) * math.cos(p),
        cy - distance * math.cos(t) * math.cos(p),
        cz + distance * math.sin(p),
    )
    # Looking straight down, "up" is north rotated by theta
    if abs(phi) >= 89.9:
        view_up = (-math.sin(t), math.cos(t), 0.0)
    else:
        view_up = (0.0, 0.0, 1.0)
    return [position, tuple(center), view_up]


def render_camera(context: RenderContext, camera: CameraSettings) -> None:
    """Point the camera at the relief."""
    plotter = context.require()
    if context.scene_center is None:
        raise RuntimeError("Nothing to look at; call plot_3d first")
    if camera.zoom <= 0:
        raise ValueError(f"Camera zoom must be positive, got {camera.zoom}")

    if camera.fov <= 0:
        plotter.enable_parallel_projection()
    else:
        plotter.camera.view_angle = camera.fov

    plotter.camera_position = camera_position(
        context.scene_center, context.scene_extent, camera.theta, camera.phi
    )
    plotter.reset_camera()
    plotter.camera.zoom(1.0 / camera.zoom)


def light_position(
    center: Tuple[float, float, float],
    extent: float,
    direction: float,
    altitude: float,
) -> Tuple[float, float, float]:
    """
    Position of a directional light.

    ``direction`` is a compass bearing (0 = north, 90 = east), ``altitude``
    the angle above the horizon.
    """
    a, e = math.radians(direction), math.radians(altitude)
    distance = 2.0 * extent
    cx, cy, cz = center
    return (
        cx + distance * math.sin(a) * math.cos(e),
        cy + distance * math.cos(a) * math.cos(e),
        cz + distance * math.sin(e),
    )


def build_lights(context: RenderContext, light: LightSettings) -> List[pv.Light]:
    """Create one directional light per altitude, intensities relative to the strongest."""
    center = context.scene_center or (0.0, 0.0, 0.0)
    extent = context.scene_extent or 1.0
    strongest = max(light.intensities)

    lights = []
    for altitude, color, intensity in zip(light.altitudes, light.colors, light.intensities):
        lamp = pv.Light(
            position=light_position(center, extent, light.direction, altitude),
            focal_point=center,
            color=color,
            intensity=intensity / strongest,
            light_type="scene light",
            positional=False,
        )
        lights.append(lamp)
    return lights


def write_placeholder(path: Path) -> Path:
    """Reserve an output path with a 1x1 black PNG."""
    Image.new("RGB", (1, 1)).save(path, format="PNG")
    return path


def render_highquality(context: RenderContext, settings: RenderSettings) -> Path:
    """
    Render the scene to ``settings.output_path``.

    The image is rendered to a temporary file next to the output and moved
    into place only once complete.

    Raises:
        FileNotFoundError: If the output directory does not exist
        RenderError: If rendering fails
    """
    plotter = context.require()
    output = Path(settings.output_path)
    if not output.parent.is_dir():
        raise FileNotFoundError(f"Output directory {output.parent} does not exist")
    if settings.width <= 0 or settings.height <= 0:
        raise ValueError(f"Invalid render size {settings.width}x{settings.height}")

    if not output.exists():
        write_placeholder(output)

    plotter.remove_all_lights()
    for lamp in build_lights(context, settings.light):
        plotter.add_light(lamp)
    plotter.enable_shadows()
    if settings.samples > 1:
        plotter.enable_anti_aliasing("msaa", multi_samples=min(settings.samples, MAX_MULTI_SAMPLES))

    fd, tmp_name = tempfile.mkstemp(prefix=f".{output.stem}-", suffix=".png", dir=output.parent)
    os.close(fd)
    tmp_path = Path(tmp_name)

    start_time = time.perf_counter()
    print(f"  Rendering {settings.width}x{settings.height} image "
          f"({settings.samples} samples, {len(settings.light.altitudes)} lights)...")
    try:
        plotter.screenshot(str(tmp_path), window_size=(settings.width, settings.height))
        if tmp_path.stat().st_size == 0:
            raise RenderError("Renderer produced an empty image")
        os.replace(tmp_path, output)
    except RenderError:
        raise
    except Exception as e:
        raise RenderError(f"Render to {output} failed: {e}") from e
    finally:
        tmp_path.unlink(missing_ok=True)

    elapsed = time.perf_counter() - start_time
    print(f"    Render finished in {elapsed:.1f}s: {output}")
    return output
