"""
Shared helpers for the population relief pipeline:
- config_loader.py: config.yaml access
- color_ramp.py: seed palettes and biased color ramps
"""

from .color_ramp import PALETTES, color_ramp, get_palette
from .config_loader import Config, get_config, reload_config

__all__ = [
    'Config',
    'get_config',
    'reload_config',
    'PALETTES',
    'color_ramp',
    'get_palette',
]
