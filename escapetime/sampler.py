"""Adaptive box-subdivision sampling.

The canvas is tiled with boxes of the first size in ``box_sizes``. For each
box only the border is evaluated first. A border that never escapes implies
(empirically, for these sets) a capped interior, which is flood filled.
Otherwise the box is tiled with boxes of the next size and each is handled
the same way, until the last size is reached and the remaining interior
pixels are evaluated one by one.

Border pixels that an earlier box already computed are not recomputed. A
memoized escaped pixel counts as 0 for the border minimum, which always
forces refinement of the box; a memoized capped pixel counts as capped.
This is an approximation heuristic: a thin capped tendril that crosses no
border can still be filled over.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, NamedTuple, Optional, Sequence

import numpy as np

from .canvas import UNSET, Canvas
from .colors import Colorizer
from .geometry import Region, Scale, pixel_to_complex
from .kernel import Kernel

DEFAULT_BOX_SIZES = (120, 60, 30, 15, 5)

BORDER = "border"
FILL = "fill"
SPLIT = "split"
EVALUATE = "evaluate"


@dataclass(frozen=True)
class Box:
    """A square of pixels, clipped to whatever contains it."""

    x: int
    y: int
    size: int
    depth: int
    width: int
    height: int

    @classmethod
    def clipped(cls, x: int, y: int, size: int, depth: int, x_limit: int, y_limit: int) -> "Box":
        return cls(
            x=x,
            y=y,
            size=size,
            depth=depth,
            width=max(0, min(size, x_limit - x)),
            height=max(0, min(size, y_limit - y)),
        )

    def border_pixels(self) -> tuple[np.ndarray, np.ndarray]:
        """Return ``(xs, ys)`` of the border in row-major order, corners once."""

        mask = np.zeros((self.height, self.width), dtype=bool)
        mask[0, :] = True
        mask[-1, :] = True
        mask[:, 0] = True
        mask[:, -1] = True
        rows, cols = np.nonzero(mask)
        return cols + self.x, rows + self.y

    def interior(self) -> tuple[slice, slice]:
        """Row and column slices of the pixels strictly inside the border."""

        return (
            slice(self.y + 1, self.y + max(self.height - 1, 1)),
            slice(self.x + 1, self.x + max(self.width - 1, 1)),
        )


class BorderSample(NamedTuple):
    minimum: int
    memoized: bool


@dataclass
class SamplerStats:
    """Counters collected over one render pass."""

    border_samples: int = 0
    memo_hits: int = 0
    fills: int = 0
    splits: int = 0
    evaluations: int = 0
    kernel_evaluations: int = 0
    filled_pixels: int = 0
    max_depth: int = 0

    def summary(self) -> str:
        return (
            f"{self.border_samples} border samples ({self.memo_hits} memoized), "
            f"{self.fills} fills covering {self.filled_pixels} px, {self.splits} splits, "
            f"{self.evaluations} full evaluations, {self.kernel_evaluations} kernel evaluations, "
            f"max depth {self.max_depth}"
        )


def _evaluate(canvas: Canvas, xs: np.ndarray, ys: np.ndarray, region: Region, scale: Scale,
              max_iter: int, kernel: Kernel, colorizer: Colorizer) -> np.ndarray:
    points = pixel_to_complex(region, scale, xs, ys)
    counts = np.asarray(kernel(points, max_iter), dtype=np.int32).reshape(xs.shape)
    canvas.write(xs, ys, counts, colorizer.colorize_array(counts, max_iter))
    return counts


def sample_border(
    canvas: Canvas,
    box: Box,
    region: Region,
    scale: Scale,
    max_iter: int,
    kernel: Kernel,
    colorizer: Colorizer,
    stats: Optional[SamplerStats] = None,
) -> BorderSample:
    """Compute the border of ``box`` into ``canvas`` and return its minimum escape count."""

    xs, ys = box.border_pixels()
    stored = canvas.counts[ys, xs]
    known = stored != UNSET
    memoized = bool(np.any(known))

    minimum = int(max_iter)
    if memoized:
        effective = np.where(stored[known] >= max_iter, max_iter, 0)
        minimum = min(minimum, int(effective.min()))

    fresh = ~known
    if np.any(fresh):
        counts = _evaluate(canvas, xs[fresh], ys[fresh], region, scale, max_iter, kernel, colorizer)
        minimum = min(minimum, int(counts.min()))
        if stats is not None:
            stats.kernel_evaluations += int(counts.size)

    return BorderSample(minimum=minimum, memoized=memoized)


class BoxSubdivider:
    """Render a canvas by recursive border sampling over a descending list of box sizes."""

    def __init__(
        self,
        region: Region,
        scale: Scale,
        max_iterations: int,
        kernel: Kernel,
        colorizer: Colorizer,
        box_sizes: Sequence[int] = DEFAULT_BOX_SIZES,
        *,
        trace: Optional[Callable[[str, Box], None]] = None,
    ) -> None:
        self.region = region
        self.scale = scale
        self.max_iterations = int(max_iterations)
        self.kernel = kernel
        self.colorizer = colorizer
        self.box_sizes = tuple(int(size) for size in box_sizes)
        self.trace = trace
        self.stats = SamplerStats()
        self._capped_color = np.array(colorizer.colorize(self.max_iterations, self.max_iterations), dtype=np.uint8)

    @property
    def last_depth(self) -> int:
        return len(self.box_sizes) - 1

    def render(self, canvas: Canvas) -> SamplerStats:
        size = self.box_sizes[0]
        for y in range(0, canvas.height, size):
            for x in range(0, canvas.width, size):
                self.subdivide(canvas, Box.clipped(x, y, size, 0, canvas.width, canvas.height))
        return self.stats

    def children(self, box: Box) -> Iterator[Box]:
        size = self.box_sizes[box.depth + 1]
        x_limit = box.x + box.width
        y_limit = box.y + box.height
        for y in range(box.y, y_limit, size):
            for x in range(box.x, x_limit, size):
                yield Box.clipped(x, y, size, box.depth + 1, x_limit, y_limit)

    def subdivide(self, canvas: Canvas, box: Box) -> None:
        stats = self.stats
        stats.max_depth = max(stats.max_depth, box.depth)

        sample = sample_border(canvas, box, self.region, self.scale, self.max_iterations,
                               self.kernel, self.colorizer, stats)
        stats.border_samples += 1
        if sample.memoized:
            stats.memo_hits += 1
        self._emit(BORDER, box)

        if sample.minimum >= self.max_iterations:
            self._emit(FILL, box)
            rows, cols = box.interior()
            stats.fills += 1
            stats.filled_pixels += canvas.fill(rows, cols, self.max_iterations, self._capped_color)
            return

        if box.depth < self.last_depth:
            self._emit(SPLIT, box)
            stats.splits += 1
            for child in self.children(box):
                self.subdivide(canvas, child)
            return

        self._emit(EVALUATE, box)
        stats.evaluations += 1
        self._evaluate_interior(canvas, box)

    def _evaluate_interior(self, canvas: Canvas, box: Box) -> None:
        rows, cols = box.interior()
        window = canvas.counts[rows, cols]
        local_ys, local_xs = np.nonzero(window == UNSET)
        if local_xs.size == 0:
            return
        counts = _evaluate(canvas, local_xs + cols.start, local_ys + rows.start, self.region, self.scale,
                           self.max_iterations, self.kernel, self.colorizer)
        self.stats.kernel_evaluations += int(counts.size)

    def _emit(self, event: str, box: Box) -> None:
        if self.trace is not None:
            self.trace(event, box)
