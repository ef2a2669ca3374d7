"""
Configuration loader for the Ukraine population relief project.

Loads configuration from config.yaml and provides easy access to parameters.
"""

from pathlib import Path
from typing import Any, Dict, List

import yaml


DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"


class Config:
    """Configuration loader and accessor."""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH):
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to config.yaml file
        """
        self.config_path = Path(config_path)
        with open(self.config_path, 'r') as f:
            self._config = yaml.safe_load(f) or {}

        # Relative data/output paths resolve against the config file's directory
        self.base_dir = self.config_path.resolve().parent

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-separated path.

        Examples:
            config.get('raster.size') -> 5000
            config.get('camera.theta') -> -20

        Args:
            path: Dot-separated path to configuration value
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        parts = path.split('.')
        value = self._config

        for part in parts:
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default

        return value

    def path(self, key: str, default: str) -> Path:
        """Get a file path setting, resolved against the config directory."""
        value = Path(self.get(key, default))
        if not value.is_absolute():
            value = self.base_dir / value
        return value

    @property
    def country_name(self) -> str:
        """Get the country the map is built for."""
        return self.get('country.name', 'Ukraine')

    @property
    def boundary_name_field(self) -> str:
        """Get attribute used to select boundary polygons."""
        return self.get('country.name_field', 'adm0_en')

    @property
    def boundary_names(self) -> List[str]:
        """Get the attribute values selecting the country's polygons."""
        names = self.get('country.names', [self.country_name])
        if isinstance(names, str):
            return [names]
        return list(names)

    @property
    def population_file(self) -> Path:
        """Get path to the population hexagon grid."""
        return self.path('data.population_file', 'data/kontur_population_UA_20231101.gpkg')

    @property
    def population_field(self) -> str:
        """Get population attribute column."""
        return self.get('data.population_field', 'population')

    @property
    def boundaries_file(self) -> Path:
        """Get path to administrative boundaries file."""
        return self.path('data.boundaries_file', 'data/ukraine_raions.geojson')

    @property
    def target_crs(self) -> str:
        """Get common planar CRS (Web Mercator)."""
        return self.get('projection.target_crs', 'EPSG:3857')

    @property
    def raster_size(self) -> int:
        """Get base raster size in cells along the longer side."""
        return int(self.get('raster.size', 5000))

    @property
    def clip_to_boundary(self) -> bool:
        return bool(self.get('raster.clip_to_boundary', True))

    @property
    def all_touched(self) -> bool:
        return bool(self.get('raster.all_touched', False))

    @property
    def color_settings(self) -> Dict[str, Any]:
        """
        Get color ramp settings.

        Returns:
            Dictionary with palette, bias, n
        """
        colors = self.get('colors', {})
        return {
            'palette': colors.get('palette', 'OKeeffe2'),
            'bias': float(colors.get('bias', 2.0)),
            'n': int(colors.get('n', 256)),
        }

    @property
    def relief_settings(self) -> Dict[str, Any]:
        """
        Get 3D relief settings.

        Returns:
            Dictionary with zscale, solid, shadow_depth, hillshade settings
        """
        relief = self.get('relief', {})
        return {
            'zscale': float(relief.get('zscale', 20)),
            'solid': bool(relief.get('solid', False)),
            'shadow_depth': float(relief.get('shadow_depth', 0)),
            'hillshade': bool(relief.get('hillshade', False)),
            'hillshade_exaggeration': float(relief.get('hillshade_exaggeration', 1)),
        }

    @property
    def camera_settings(self) -> Dict[str, float]:
        """
        Get camera settings.

        Returns:
            Dictionary with theta, phi, zoom, fov
        """
        camera = self.get('camera', {})
        return {
            'theta': float(camera.get('theta', -20)),
            'phi': float(camera.get('phi', 45)),
            'zoom': float(camera.get('zoom', 0.8)),
            'fov': float(camera.get('fov', 0)),
        }

    @property
    def render_settings(self) -> Dict[str, Any]:
        """Get high-quality render settings."""
        render = self.get('render', {})
        return {
            'light_direction': float(render.get('light_direction', 280)),
            'light_altitudes': list(render.get('light_altitudes', [20, 80])),
            'light_colors': list(render.get('light_colors', ['white', 'white'])),
            'light_intensities': list(render.get('light_intensities', [600, 100])),
            'samples': int(render.get('samples', 450)),
            'width': int(render.get('width', 6000)),
            'height': int(render.get('height', 6000)),
        }

    @property
    def annotation_color(self) -> str:
        return self.get('annotation.color', '#000000')

    @property
    def annotation_layers(self) -> List[Dict[str, Any]]:
        """Get list of text layers (text, gravity, offset, font, size, weight)."""
        return self.get('annotation.layers', [])

    @property
    def render_file(self) -> Path:
        return self.path('output.render_file', 'images/final_plot.png')

    @property
    def annotated_file(self) -> Path:
        return self.path('output.annotated_file', 'images/titled_final_plot.png')

    @property
    def matrix_cache(self) -> Path:
        """Get path of the cached height matrix."""
        return self.path('output.matrix_cache', 'data/height_matrix.npz')

    def __repr__(self) -> str:
        """String representation."""
        return f"Config(country='{self.country_name}', size={self.raster_size})"


# Global config instance
_config_instance = None


def get_config(config_path: str = DEFAULT_CONFIG_PATH) -> Config:
    """
    Get or create global config instance.

    Args:
        config_path: Path to config file

    Returns:
        Config instance
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config(config_path)
    return _config_instance


def reload_config(config_path: str = DEFAULT_CONFIG_PATH) -> Config:
    """
    Reload configuration from file.

    Args:
        config_path: Path to config file

    Returns:
        New Config instance
    """
    global _config_instance
    _config_instance = Config(config_path)
    return _config_instance


if __name__ == "__main__":
    config = get_config()
    print(f"Config loaded: {config}")
    print(f"Population: {config.population_file}")
    print(f"Boundaries: {config.boundaries_file}")
    print(f"Camera: {config.camera_settings}")
    print(f"Text layers: {len(config.annotation_layers)}")
