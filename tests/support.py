"""Kernels and helpers shared by the test modules."""

import numpy as np

from escapetime import MANDELBROT, iterate


class CountingKernel(object):
    """Wrap a kernel and record how many points it was asked to evaluate."""

    def __init__(self, kernel):
        self.kernel = kernel
        self.calls = 0
        self.points = 0

    def __call__(self, points, max_iter):
        self.calls += 1
        self.points += np.asarray(points).size
        return self.kernel(points, max_iter)


def capped_kernel(points, max_iter):
    return np.full(np.shape(points), max_iter, dtype=np.int32)


def escaped_kernel(points, max_iter):
    return np.zeros(np.shape(points), dtype=np.int32)


def reference_kernel(points, max_iter, variant=MANDELBROT):
    """Pure Python kernel built on the scalar ``iterate``."""

    points = np.asarray(points, dtype=np.complex128)
    counts = [iterate(complex(c), max_iter, variant) for c in points.ravel()]
    return np.array(counts, dtype=np.int32).reshape(points.shape)


def spike_kernel(target, count=0):
    """Capped everywhere except at ``target``, which escapes at ``count``."""

    def kernel(points, max_iter):
        points = np.asarray(points, dtype=np.complex128)
        counts = np.full(points.shape, max_iter, dtype=np.int32)
        counts[np.isclose(points, target, rtol=0.0, atol=1e-12)] = count
        return counts

    return kernel


class TraceRecorder(object):
    def __init__(self):
        self.events = []

    def __call__(self, event, box):
        self.events.append((event, box))

    def boxes(self, event):
        return [box for name, box in self.events if name == event]
