"""Pixel canvas shared by one render pass."""

from __future__ import annotations

from typing import Optional

import numpy as np
import PIL.Image

UNSET = -1


class Canvas:
    """A grid of RGBA pixels that also remembers the escape count behind each one.

    A pixel is either unset (its count is ``UNSET``) or computed. Computed
    pixels are never overwritten during a pass: :meth:`write` only receives
    coordinates the caller found unset, and :meth:`fill` skips computed pixels.
    """

    def __init__(self, width: int, height: int) -> None:
        self.width = int(width)
        self.height = int(height)
        self.counts = np.full((self.height, self.width), UNSET, dtype=np.int32)
        self.rgba = np.zeros((self.height, self.width, 4), dtype=np.uint8)

    @property
    def shape(self) -> tuple[int, int]:
        return self.height, self.width

    def is_computed(self, x: int, y: int) -> bool:
        return bool(self.counts[y, x] != UNSET)

    def computed_mask(self) -> np.ndarray:
        return self.counts != UNSET

    @property
    def complete(self) -> bool:
        return bool(np.all(self.counts != UNSET))

    def pixel(self, x: int, y: int) -> Optional[tuple[int, int, int, int]]:
        """Return the colour at ``(x, y)``, or ``None`` while it is unset."""

        if not self.is_computed(x, y):
            return None
        return tuple(int(channel) for channel in self.rgba[y, x])

    def write(self, xs: np.ndarray, ys: np.ndarray, counts: np.ndarray, colors: np.ndarray) -> None:
        self.counts[ys, xs] = counts
        self.rgba[ys, xs] = colors

    def fill(self, rows: slice, cols: slice, count: int, color) -> int:
        """Set every unset pixel in the window to ``count``/``color``; return how many changed."""

        window = self.counts[rows, cols]
        unset = window == UNSET
        changed = int(np.count_nonzero(unset))
        if changed:
            window[unset] = count
            self.rgba[rows, cols][unset] = color
        return changed

    def to_image(self) -> PIL.Image.Image:
        return PIL.Image.fromarray(self.rgba)
