"""Rendering of a single fractal frame."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
import PIL.Image

from .canvas import Canvas
from .colors import Colorizer
from .geometry import Region, Scale, pixel_to_complex
from .kernel import MANDELBROT, Kernel, make_kernel
from .sampler import DEFAULT_BOX_SIZES, Box, BoxSubdivider, SamplerStats

ADAPTIVE = "adaptive"
FLAT = "flat"
SAMPLERS = (ADAPTIVE, FLAT)


@dataclass(frozen=True)
class RenderParameters:
    """Parameters that describe a single render."""

    width: int
    height: int
    center_re: float
    center_im: float
    zoom: float
    max_iterations: int
    box_sizes: tuple[int, ...] = DEFAULT_BOX_SIZES
    variant: str = MANDELBROT

    @property
    def aspect(self) -> float:
        return float(np.float64(self.width) / np.float64(self.height))


@dataclass(frozen=True)
class RenderResult:
    """Container for the canvas and geometry of a finished render."""

    canvas: Canvas
    region: Region
    scale: Scale
    stats: SamplerStats

    @property
    def iterations(self) -> np.ndarray:
        return self.canvas.counts

    def image(self) -> PIL.Image.Image:
        return self.canvas.to_image()


def _render_flat(canvas: Canvas, region: Region, scale: Scale, max_iter: int,
                 kernel: Kernel, colorizer: Colorizer) -> SamplerStats:
    ys, xs = np.indices(canvas.shape)
    xs = xs.ravel()
    ys = ys.ravel()
    counts = np.asarray(kernel(pixel_to_complex(region, scale, xs, ys), max_iter), dtype=np.int32)
    canvas.write(xs, ys, counts, colorizer.colorize_array(counts, max_iter))
    return SamplerStats(kernel_evaluations=int(counts.size))


def render_frame(
    params: RenderParameters,
    *,
    sampler: str = ADAPTIVE,
    colorizer: Optional[Colorizer] = None,
    kernel: Optional[Kernel] = None,
    device: Optional[str] = None,
    trace: Optional[Callable[[str, Box], None]] = None,
) -> RenderResult:
    """Render a frame given the supplied parameters."""

    region = Region.from_view(params.center_re, params.center_im, params.zoom, params.aspect)
    scale = Scale.for_region(region, params.width, params.height)
    if kernel is None:
        kernel = make_kernel(params.variant, device=device)
    if colorizer is None:
        colorizer = Colorizer()

    canvas = Canvas(params.width, params.height)
    if sampler == ADAPTIVE:
        subdivider = BoxSubdivider(region, scale, params.max_iterations, kernel, colorizer,
                                   params.box_sizes, trace=trace)
        stats = subdivider.render(canvas)
    elif sampler == FLAT:
        stats = _render_flat(canvas, region, scale, params.max_iterations, kernel, colorizer)
    else:
        raise ValueError(f"Unknown sampler '{sampler}'. Valid choices: {', '.join(SAMPLERS)}.")

    return RenderResult(canvas=canvas, region=region, scale=scale, stats=stats)
