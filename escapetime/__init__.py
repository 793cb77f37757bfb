"""Public API for adaptive escape-time fractal rendering."""

from .canvas import UNSET, Canvas
from .colors import Colorizer, parse_hex_color
from .geometry import Region, Scale, pixel_to_complex
from .kernel import BURNING_SHIP, MANDELBROT, VARIANTS, escape_counts, iterate, make_kernel
from .renderer import SAMPLERS, RenderParameters, RenderResult, render_frame
from .sampler import DEFAULT_BOX_SIZES, BorderSample, Box, BoxSubdivider, SamplerStats, sample_border
from .schedule import apply_zoom, compute_zoom_factors, zoom_sequence

__all__ = [
    "BURNING_SHIP",
    "BorderSample",
    "Box",
    "BoxSubdivider",
    "Canvas",
    "Colorizer",
    "DEFAULT_BOX_SIZES",
    "MANDELBROT",
    "Region",
    "RenderParameters",
    "RenderResult",
    "SAMPLERS",
    "SamplerStats",
    "Scale",
    "UNSET",
    "VARIANTS",
    "apply_zoom",
    "compute_zoom_factors",
    "escape_counts",
    "iterate",
    "make_kernel",
    "parse_hex_color",
    "pixel_to_complex",
    "render_frame",
    "sample_border",
    "zoom_sequence",
]
