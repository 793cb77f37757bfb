"""Utilities for managing zoom sequences."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterator, Optional

import numpy as np

from .renderer import RenderParameters

DEFAULT_ZOOM_FACTOR = 0.95


def compute_zoom_factors(frames: int, zoom_factor: float, *, final_zoom: Optional[float] = None,
                         easing: str = "linear") -> np.ndarray:
    """Compute per-frame zoom multipliers for the sequence.

    Factor ``i`` takes frame ``i - 1`` to frame ``i``, so the first factor is
    always 1. With ``final_zoom`` the factors multiply to ``final_zoom`` and
    ``easing="ease"`` slows the start and end of the zoom.
    """

    if frames <= 0:
        return np.array([], dtype=np.float64)

    if final_zoom is None or final_zoom <= 0:
        factors = np.full(frames, np.float64(zoom_factor), dtype=np.float64)
        factors[0] = 1.0
        return factors

    if frames == 1:
        return np.array([np.float64(final_zoom)], dtype=np.float64)

    t = np.arange(frames, dtype=np.float64) / np.float64(frames - 1)
    alphas = t if easing.lower() == "linear" else 3 * t ** 2 - 2 * t ** 3
    alphas = np.clip(alphas, 0.0, 1.0)
    increments = np.diff(np.concatenate(([0.0], alphas)))
    return np.exp(increments * np.log(np.float64(final_zoom)))


def apply_zoom(params: RenderParameters, zoom_factor: float) -> RenderParameters:
    zoom = np.float64(params.zoom) * np.float64(zoom_factor)
    return replace(params, zoom=float(zoom))


def zoom_sequence(params: RenderParameters, factors: np.ndarray) -> Iterator[RenderParameters]:
    """Yield the parameters of each frame, applying one factor per frame."""

    for factor in factors:
        params = apply_zoom(params, factor)
        yield params
