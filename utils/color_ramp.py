"""
Color ramps for population relief shading.

A small seed palette is stretched to N colors. The ``bias`` parameter moves
the seed colors along the ramp: positions are ``linspace(0, 1, k) ** (1 / bias)``
so bias > 1 spends more of the ramp on the light, low-density end.
"""

from typing import Dict, List, Sequence

import numpy as np
from matplotlib.colors import LinearSegmentedColormap, to_hex, to_rgb


# Seed palettes (light -> dark)
PALETTES: Dict[str, List[str]] = {
    "OKeeffe2": ["#fbe3c2", "#f2c88f", "#ecb27d", "#e69c6b", "#d37750", "#b9563f", "#92351e"],
    "Hokusai2": ["#abc9c8", "#72aeb6", "#4692b0", "#2f70a1", "#134b73", "#0a3351"],
    "Tam": ["#ffd353", "#ffb242", "#ef8737", "#de4f33", "#bb292c", "#9f2d55", "#62205f", "#341648"],
}


def get_palette(name: str) -> List[str]:
    """
    Look up a named seed palette.

    Raises:
        KeyError: If the palette is unknown
    """
    if name not in PALETTES:
        raise KeyError(f"Unknown palette '{name}'. Available: {', '.join(sorted(PALETTES))}")
    return list(PALETTES[name])


def color_ramp(colors: Sequence[str], n: int = 256, bias: float = 1.0) -> List[str]:
    """
    Interpolate a seed palette into ``n`` colors.

    Args:
        colors: Seed colors (any matplotlib color spec)
        n: Number of output colors
        bias: Spacing of seed colors along the ramp (must be positive)

    Returns:
        List of ``n`` hex color strings
    """
    if len(colors) < 2:
        raise ValueError("A color ramp needs at least two seed colors")
    if n < 2:
        raise ValueError(f"Color ramp size must be at least 2, got {n}")
    if bias <= 0:
        raise ValueError(f"Color ramp bias must be positive, got {bias}")

    positions = np.linspace(0.0, 1.0, len(colors)) ** (1.0 / bias)
    stops = [(float(pos), to_rgb(color)) for pos, color in zip(positions, colors)]
    cmap = LinearSegmentedColormap.from_list("population_ramp", stops, N=n)

    return [to_hex(cmap(i)) for i in range(n)]
