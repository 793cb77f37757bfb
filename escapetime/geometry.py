"""Mapping between the pixel grid and the complex plane."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

PADDING = 2.0


@dataclass(frozen=True)
class Region:
    """Visible window of the complex plane."""

    re_min: float
    re_max: float
    im_min: float
    im_max: float

    @classmethod
    def from_view(cls, center_re: float, center_im: float, zoom: float, aspect: float) -> "Region":
        """Build the window around a centre point; smaller ``zoom`` means closer."""

        padding = np.float64(PADDING) * np.float64(zoom)
        half_width = padding * np.float64(aspect)
        return cls(
            re_min=float(np.float64(center_re) - half_width),
            re_max=float(np.float64(center_re) + half_width),
            im_min=float(np.float64(center_im) - padding),
            im_max=float(np.float64(center_im) + padding),
        )

    @property
    def center(self) -> tuple[float, float]:
        return (self.re_min + self.re_max) / 2.0, (self.im_min + self.im_max) / 2.0


@dataclass(frozen=True)
class Scale:
    """Pixels per unit along each axis."""

    x_scale: float
    y_scale: float

    @classmethod
    def for_region(cls, region: Region, width: int, height: int) -> "Scale":
        x_scale = abs(np.float64(width) / (np.float64(region.re_min) - np.float64(region.re_max)))
        y_scale = abs(np.float64(height) / (np.float64(region.im_min) - np.float64(region.im_max)))
        return cls(x_scale=float(x_scale), y_scale=float(y_scale))


def pixel_to_complex(region: Region, scale: Scale, x, y):
    """Map pixel column ``x`` and row ``y`` (scalars or arrays) to complex coordinates.

    Row 0 is the top of the image, so the imaginary axis is inverted.
    """

    re = np.float64(region.re_min) + np.asarray(x, dtype=np.float64) / np.float64(scale.x_scale)
    im = np.float64(region.im_max) - np.asarray(y, dtype=np.float64) / np.float64(scale.y_scale)
    return re + 1j * im
