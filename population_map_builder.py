#!/usr/bin/env python3
"""
Ukraine Population Relief Builder

Builds a 3D population density map of Ukraine from the Kontur population
hexagon grid, one stage at a time:

1. load       - Read population grid and administrative boundaries, reproject
2. boundary   - Dissolve the country's polygons into one valid boundary
3. aspect     - Measure the boundary and derive raster width/height ratios
4. rasterize  - Burn population into a height matrix sized by the ratios
5. render     - Shade the matrix, build the 3D relief and render a PNG
6. annotate   - Add title, subtitle and credits to the render

Any failure aborts the run.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import geopandas as gpd
from matplotlib.colors import LightSource
from shapely.geometry.base import BaseGeometry

from annotator import TextLayer, annotate_image, resolve_font
from aspect_calculator import AspectRatio, compute_aspect_ratio
from boundary_builder import build_boundary, clip_to_boundary
from population_loader import load_inputs
from population_rasterizer import (
    HeightMatrix,
    load_height_matrix,
    rasterize_population,
    raster_dimensions,
    save_height_matrix,
)
from relief_renderer import (
    CameraSettings,
    LightSettings,
    RenderContext,
    RenderSettings,
    plot_3d,
    render_camera,
    render_highquality,
)
from utils.color_ramp import color_ramp, get_palette
from utils.config_loader import Config, DEFAULT_CONFIG_PATH


class PopulationMapBuilder:
    """Run the population relief pipeline for one configuration."""

    def __init__(self, config: Config, render_context: Optional[RenderContext] = None):
        """
        Args:
            config: Loaded configuration
            render_context: Render context to draw into; a new off-screen
                context sized from the render settings if omitted
        """
        self.config = config
        self.render_context = render_context

        self.population: Optional[gpd.GeoDataFrame] = None
        self.boundaries: Optional[gpd.GeoDataFrame] = None
        self.boundary: Optional[BaseGeometry] = None
        self.aspect: Optional[AspectRatio] = None
        self.matrix: Optional[HeightMatrix] = None
        self.texture: List[str] = []

    def text_layers(self) -> List[TextLayer]:
        """Build text layers from the annotation config."""
        return [TextLayer(**layer) for layer in self.config.annotation_layers]

    def preflight(self) -> None:
        """
        Check fonts and output directories before any expensive work.

        Raises:
            FontNotFoundError: If an annotation font is missing
        """
        print("\nPreflight checks...")
        for layer in self.text_layers():
            font_path = resolve_font(layer.font, layer.weight)
            print(f"  Font '{layer.font}' ({layer.weight}): {font_path.name}")

        for path in (self.config.render_file, self.config.annotated_file, self.config.matrix_cache):
            path.parent.mkdir(parents=True, exist_ok=True)
        print(f"  Output directory: {self.config.render_file.parent}")

    def load(self) -> None:
        print("\n[1/6] Loading input data...")
        self.population, self.boundaries = load_inputs(
            self.config.population_file,
            self.config.boundaries_file,
            self.config.target_crs,
            population_field=self.config.population_field,
            name_field=self.config.boundary_name_field,
        )

    def build_boundary(self) -> BaseGeometry:
        print(f"\n[2/6] Building {self.config.country_name} boundary...")
        self.boundary = build_boundary(
            self.boundaries,
            self.config.boundary_name_field,
            self.config.boundary_names,
        )
        return self.boundary

    def compute_aspect(self) -> AspectRatio:
        print("\n[3/6] Computing aspect ratio...")
        self.aspect = compute_aspect_ratio(self.boundary)
        return self.aspect

    def rasterize(self) -> HeightMatrix:
        print("\n[4/6] Rasterizing population...")
        population = self.population
        if self.config.clip_to_boundary:
            population = clip_to_boundary(population, self.boundary)

        dimensions = raster_dimensions(self.config.raster_size, self.aspect)
        self.matrix = rasterize_population(
            population,
            dimensions,
            value_field=self.config.population_field,
            all_touched=self.config.all_touched,
        )
        save_height_matrix(self.matrix, self.config.matrix_cache)
        return self.matrix

    def build_texture(self) -> List[str]:
        colors = self.config.color_settings
        self.texture = color_ramp(get_palette(colors['palette']), n=colors['n'], bias=colors['bias'])
        return self.texture

    def hillshade_light(self) -> Optional[LightSource]:
        """Light for the color hillshade, or None when it is disabled."""
        if not self.config.relief_settings['hillshade']:
            return None
        render = self.config.render_settings
        return LightSource(azdeg=render['light_direction'], altdeg=max(render['light_altitudes']))

    def render(self) -> Path:
        print("\n[5/6] Rendering 3D relief...")
        render = self.config.render_settings
        relief = self.config.relief_settings
        settings = RenderSettings(
            output_path=self.config.render_file,
            width=render['width'],
            height=render['height'],
            samples=render['samples'],
            light=LightSettings(
                direction=render['light_direction'],
                altitudes=render['light_altitudes'],
                colors=render['light_colors'],
                intensities=render['light_intensities'],
            ),
        )

        texture = self.texture or self.build_texture()
        context = self.render_context or RenderContext(window_size=(settings.width, settings.height))
        with context:
            plot_3d(
                context,
                self.matrix,
                texture,
                zscale=relief['zscale'],
                solid=relief['solid'],
                shadow_depth=relief['shadow_depth'],
                light_source=self.hillshade_light(),
                vert_exag=relief['hillshade_exaggeration'],
            )
            render_camera(context, CameraSettings(**self.config.camera_settings))
            return render_highquality(context, settings)

    def annotate(self) -> Path:
        print("\n[6/6] Annotating...")
        return annotate_image(
            self.config.render_file,
            self.text_layers(),
            self.config.annotated_file,
            color=self.config.annotation_color,
        )

    def run(self, reuse_matrix: bool = False, skip_render: bool = False) -> Path:
        """
        Run all stages in order.

        Args:
            reuse_matrix: Load the cached height matrix instead of steps 1-4
            skip_render: Only re-annotate an existing render

        Returns:
            Path to the annotated image
        """
        self.preflight()

        if not skip_render:
            if reuse_matrix:
                print("\n[1-4/6] Reusing cached height matrix...")
                self.matrix = load_height_matrix(self.config.matrix_cache)
            else:
                self.load()
                self.build_boundary()
                self.compute_aspect()
                self.rasterize()
            self.render()

        return self.annotate()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Render a 3D population density map")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to config.yaml")
    parser.add_argument("--reuse-matrix", action="store_true",
                        help="Render from the cached height matrix")
    parser.add_argument("--skip-render", action="store_true",
                        help="Only annotate the existing render")
    args = parser.parse_args(argv)

    try:
        config = Config(args.config)

        print("=" * 60)
        print(f"{config.country_name.upper()} POPULATION RELIEF")
        print("=" * 60)

        builder = PopulationMapBuilder(config)
        output = builder.run(reuse_matrix=args.reuse_matrix, skip_render=args.skip_render)
    except Exception as e:
        print(f"\nERROR: {e}")
        return 1

    print("\n" + "=" * 60)
    print("BUILD COMPLETE")
    print("=" * 60)
    print(f"\nRender: {config.render_file}")
    print(f"Final map: {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
