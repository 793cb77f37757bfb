"""Gradient colouring of escape counts."""

from __future__ import annotations

from typing import Optional

import numpy as np
from matplotlib import colormaps

DEFAULT_COLORMAP = "cubehelix"


def parse_hex_color(hex_color: str) -> tuple[int, int, int]:
    """Parse ``#RRGGBB`` into an RGB triple of 0-255 integers."""

    hex_color = hex_color.lstrip('#')
    if len(hex_color) != 6:
        raise ValueError('color must be in the form #RRGGBB.')
    try:
        return tuple(int(hex_color[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError as exc:
        raise ValueError('color must contain only hexadecimal digits.') from exc


class Colorizer:
    """Map iteration counts to opaque RGBA colours through a matplotlib colormap.

    The count is normalised as ``count / max_iter`` before the lookup, so the
    capped colour is the colormap's last entry unless ``inside_color`` is given.
    """

    def __init__(self, colormap: str = DEFAULT_COLORMAP, *, invert: bool = False,
                 inside_color: Optional[str] = None) -> None:
        cmap = colormaps[colormap]
        if invert:
            cmap = cmap.reversed()
        self.name = colormap
        self.invert = invert
        self._cmap = cmap
        self._inside = parse_hex_color(inside_color) if inside_color is not None else None

    def colorize_array(self, counts: np.ndarray, max_iter: int) -> np.ndarray:
        counts = np.asarray(counts)
        if max_iter > 0:
            t = counts.astype(np.float64) / np.float64(max_iter)
        else:
            t = np.ones(counts.shape, dtype=np.float64)
        rgba = np.array(self._cmap(np.clip(t.ravel(), 0.0, 1.0), bytes=True), dtype=np.uint8)
        rgba = rgba.reshape(counts.shape + (4,))
        rgba[..., 3] = 255
        if self._inside is not None:
            rgba[counts >= max_iter, :3] = self._inside
        return rgba

    def colorize(self, count: int, max_iter: int) -> tuple[int, int, int, int]:
        rgba = self.colorize_array(np.array([count]), max_iter)[0]
        return tuple(int(channel) for channel in rgba)

    __call__ = colorize
