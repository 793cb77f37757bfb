"""Escape-time kernels for the Mandelbrot and burning-ship families."""

from __future__ import annotations

from functools import partial
from typing import Callable, Optional

import numpy as np
import tensorflow as tf

HORIZON = 4.0

MANDELBROT = "mandelbrot"
BURNING_SHIP = "burning-ship"
VARIANTS = (MANDELBROT, BURNING_SHIP)

Kernel = Callable[[np.ndarray, int], np.ndarray]


def iterate(c: complex, max_iter: int, variant: str = MANDELBROT) -> int:
    """Return the iteration at which the orbit of ``c`` escapes, or ``max_iter``."""

    burning = variant == BURNING_SHIP
    cr = float(c.real)
    ci = float(c.imag)
    zr = 0.0
    zi = 0.0
    count = 0
    while zr * zr + zi * zi <= HORIZON and count < max_iter:
        if burning:
            zr = abs(zr)
            zi = abs(zi)
        zr, zi = zr * zr - zi * zi + cr, 2.0 * zr * zi + ci
        count += 1
    return count


@tf.function
def _escape_step(
    zr: tf.Tensor,
    zi: tf.Tensor,
    cr: tf.Tensor,
    ci: tf.Tensor,
    ns: tf.Tensor,
    active: tf.Tensor,
    burning: tf.Tensor,
) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Perform a single escape-time iteration for points that are still bounded."""

    zr_in = tf.where(burning, tf.abs(zr), zr)
    zi_in = tf.where(burning, tf.abs(zi), zi)
    zr_new = zr_in * zr_in - zi_in * zi_in + cr
    zi_new = tf.constant(2.0, dtype=zr.dtype) * zr_in * zi_in + ci
    zr = tf.where(active, zr_new, zr)
    zi = tf.where(active, zi_new, zi)
    ns = ns + tf.cast(active, tf.int32)
    horizon = tf.constant(HORIZON, dtype=zr.dtype)
    new_active = tf.logical_and(active, zr * zr + zi * zi <= horizon)
    return zr, zi, ns, new_active


@tf.function(
    input_signature=[
        tf.TensorSpec(shape=[None], dtype=tf.float64),
        tf.TensorSpec(shape=[None], dtype=tf.float64),
        tf.TensorSpec(shape=[], dtype=tf.int32),
        tf.TensorSpec(shape=[], dtype=tf.bool),
    ]
)
def _escape_run(cr: tf.Tensor, ci: tf.Tensor, max_iterations: tf.Tensor, burning: tf.Tensor) -> tf.Tensor:
    """Iterate every point until it escapes or the cap is reached."""

    i = tf.constant(0, dtype=tf.int32)
    zr = tf.zeros_like(cr)
    zi = tf.zeros_like(ci)
    ns = tf.zeros_like(cr, dtype=tf.int32)
    active = tf.ones_like(cr, dtype=tf.bool)

    def cond(i, zr, zi, ns, active):
        return tf.logical_and(tf.less(i, max_iterations), tf.reduce_any(active))

    def body(i, zr, zi, ns, active):
        zr, zi, ns, active = _escape_step(zr, zi, cr, ci, ns, active, burning)
        return i + 1, zr, zi, ns, active

    _, _, _, ns, _ = tf.while_loop(cond, body, (i, zr, zi, ns, active))
    return ns


def escape_counts(
    points: np.ndarray,
    max_iter: int,
    variant: str = MANDELBROT,
    *,
    device: Optional[str] = None,
) -> np.ndarray:
    """Vectorised :func:`iterate` over an array of complex points."""

    if variant not in VARIANTS:
        raise ValueError(f"Unknown fractal variant '{variant}'. Valid choices: {', '.join(VARIANTS)}.")

    points = np.asarray(points, dtype=np.complex128)
    flat = points.ravel()
    if flat.size == 0:
        return np.zeros(points.shape, dtype=np.int32)

    with tf.device(device if device is not None else "/CPU:0"):
        ns = _escape_run(
            tf.convert_to_tensor(flat.real, dtype=tf.float64),
            tf.convert_to_tensor(flat.imag, dtype=tf.float64),
            tf.constant(int(max_iter), dtype=tf.int32),
            tf.constant(variant == BURNING_SHIP),
        )
    return ns.numpy().astype(np.int32, copy=False).reshape(points.shape)


def make_kernel(variant: str = MANDELBROT, *, device: Optional[str] = None) -> Kernel:
    """Bind a variant and device, returning a ``kernel(points, max_iter)`` callable."""

    if variant not in VARIANTS:
        raise ValueError(f"Unknown fractal variant '{variant}'. Valid choices: {', '.join(VARIANTS)}.")
    return partial(escape_counts, variant=variant, device=device)
