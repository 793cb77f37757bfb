import unittest

import numpy as np

from escapetime import (
    DEFAULT_BOX_SIZES,
    UNSET,
    Box,
    BoxSubdivider,
    Canvas,
    Colorizer,
    Region,
    Scale,
    pixel_to_complex,
    sample_border,
)

from tests.support import (
    CountingKernel,
    TraceRecorder,
    capped_kernel,
    escaped_kernel,
    reference_kernel,
    spike_kernel,
)


class GuardedCanvas(Canvas):
    """Canvas that refuses to write over a computed pixel."""

    def write(self, xs, ys, counts, colors):
        assert np.all(self.counts[ys, xs] == UNSET), "computed pixel written twice"
        Canvas.write(self, xs, ys, counts, colors)


def make_geometry(width, height, center=(-0.75, 0.0), zoom=1.0):
    region = Region.from_view(center[0], center[1], zoom, width / float(height))
    return region, Scale.for_region(region, width, height)


class TestBox(unittest.TestCase):
    def test_border_and_interior(self):
        box = Box.clipped(10, 20, 5, 0, 100, 100)
        xs, ys = box.border_pixels()
        self.assertEqual(xs.size, 16)
        self.assertEqual(len(set(zip(xs.tolist(), ys.tolist()))), 16)
        self.assertEqual((xs.min(), xs.max(), ys.min(), ys.max()), (10, 14, 20, 24))
        rows, cols = box.interior()
        self.assertEqual((rows.start, rows.stop, cols.start, cols.stop), (21, 24, 11, 14))

    def test_clipping(self):
        box = Box.clipped(6, 6, 8, 0, 10, 7)
        self.assertEqual((box.width, box.height), (4, 1))
        xs, ys = box.border_pixels()
        self.assertEqual(sorted(xs.tolist()), [6, 7, 8, 9])
        self.assertEqual(set(ys.tolist()), {6})
        rows, cols = box.interior()
        self.assertEqual(rows.stop - rows.start, 0)

    def test_two_pixel_box_has_no_interior(self):
        box = Box.clipped(0, 0, 2, 0, 10, 10)
        self.assertEqual(box.border_pixels()[0].size, 4)
        rows, cols = box.interior()
        self.assertEqual(rows.stop - rows.start, 0)
        self.assertEqual(cols.stop - cols.start, 0)


class TestSampleBorder(unittest.TestCase):
    max_iter = 30

    def setUp(self):
        self.canvas = Canvas(8, 8)
        self.region, self.scale = make_geometry(8, 8)
        self.colorizer = Colorizer()
        self.box = Box.clipped(0, 0, 8, 0, 8, 8)

    def sample(self, kernel):
        return sample_border(self.canvas, self.box, self.region, self.scale, self.max_iter,
                             kernel, self.colorizer)

    def test_fresh_border(self):
        kernel = CountingKernel(reference_kernel)
        sample = self.sample(kernel)
        xs, ys = self.box.border_pixels()
        expected = reference_kernel(pixel_to_complex(self.region, self.scale, xs, ys), self.max_iter)
        self.assertEqual(sample.minimum, int(expected.min()))
        self.assertFalse(sample.memoized)
        self.assertEqual(kernel.points, 28)
        np.testing.assert_array_equal(self.canvas.counts[ys, xs], expected)
        self.assertTrue(np.all(self.canvas.counts[1:7, 1:7] == UNSET))

    def test_memoized_escaped_pixel_forces_refinement(self):
        stored = self.colorizer.colorize_array(np.array([4]), self.max_iter)
        self.canvas.write(np.array([3]), np.array([0]), np.array([4]), stored)
        kernel = CountingKernel(capped_kernel)
        sample = self.sample(kernel)
        self.assertEqual(sample.minimum, 0)
        self.assertTrue(sample.memoized)
        self.assertEqual(kernel.points, 27)
        self.assertEqual(self.canvas.counts[0, 3], 4)
        self.assertEqual(self.canvas.pixel(3, 0), tuple(int(v) for v in stored[0]))

    def test_memoized_capped_pixel_keeps_box_uniform(self):
        capped = self.colorizer.colorize_array(np.array([self.max_iter]), self.max_iter)
        self.canvas.write(np.array([0]), np.array([5]), np.array([self.max_iter]), capped)
        sample = self.sample(capped_kernel)
        self.assertEqual(sample.minimum, self.max_iter)
        self.assertTrue(sample.memoized)

    def test_fully_memoized_border_skips_kernel(self):
        self.sample(capped_kernel)
        kernel = CountingKernel(escaped_kernel)
        sample = self.sample(kernel)
        self.assertEqual(kernel.calls, 0)
        self.assertEqual(sample.minimum, self.max_iter)


class TestBoxSubdivider(unittest.TestCase):
    def make(self, width, height, kernel, max_iter=50, box_sizes=DEFAULT_BOX_SIZES, trace=None,
             canvas_class=Canvas, colorizer=None):
        region, scale = make_geometry(width, height)
        colorizer = colorizer or Colorizer()
        subdivider = BoxSubdivider(region, scale, max_iter, kernel, colorizer, box_sizes, trace=trace)
        return subdivider, canvas_class(width, height)

    def test_uniform_cap_fills_without_recursion(self):
        trace = TraceRecorder()
        colorizer = Colorizer()
        subdivider, canvas = self.make(240, 240, CountingKernel(capped_kernel), trace=trace, colorizer=colorizer)
        stats = subdivider.render(canvas)
        self.assertEqual(stats.border_samples, 4)
        self.assertEqual(stats.fills, 4)
        self.assertEqual(stats.splits, 0)
        self.assertEqual(stats.evaluations, 0)
        self.assertTrue(all(box.depth == 0 for box in trace.boxes("border")))
        self.assertTrue(np.all(canvas.counts == 50))
        capped = np.array(colorizer.colorize(50, 50), dtype=np.uint8)
        self.assertTrue(np.all(canvas.rgba == capped))
        self.assertEqual(subdivider.kernel.points + stats.filled_pixels, 240 * 240)

    def test_depth_bound(self):
        trace = TraceRecorder()
        kernel = CountingKernel(escaped_kernel)
        subdivider, canvas = self.make(240, 240, kernel, trace=trace)
        stats = subdivider.render(canvas)

        self.assertEqual(stats.max_depth, 4)
        self.assertEqual(stats.fills, 0)
        self.assertEqual(stats.border_samples, 4 + 16 + 64 + 256 + 2304)
        self.assertTrue(all(box.depth == 4 and box.size == 5 for box in trace.boxes("evaluate")))
        self.assertTrue(all(box.depth < 4 for box in trace.boxes("split")))
        for box in trace.boxes("border"):
            self.assertEqual(box.size, DEFAULT_BOX_SIZES[box.depth])
        # every pixel reaches the kernel exactly once
        self.assertEqual(kernel.points, 240 * 240)
        self.assertEqual(stats.kernel_evaluations, 240 * 240)
        self.assertTrue(canvas.complete)

    def test_border_before_interior(self):
        region, scale = make_geometry(16, 16)
        canvas = Canvas(16, 16)

        def check(event, box):
            if event == "border":
                return
            xs, ys = box.border_pixels()
            self.assertTrue(np.all(canvas.counts[ys, xs] != UNSET))
            if event in ("fill", "evaluate"):
                rows, cols = box.interior()
                self.assertTrue(np.all(canvas.counts[rows, cols] == UNSET))

        subdivider = BoxSubdivider(region, scale, 50, reference_kernel, Colorizer(), (8, 4), trace=check)
        subdivider.render(canvas)
        self.assertTrue(canvas.complete)

    def test_computed_pixels_are_never_rewritten(self):
        subdivider, canvas = self.make(45, 30, reference_kernel, max_iter=40, box_sizes=(15, 5),
                                       canvas_class=GuardedCanvas)
        subdivider.render(canvas)
        self.assertTrue(canvas.complete)

    def test_only_fills_disagree_with_flat_evaluation(self):
        # Filling a box whose border is capped is an accepted approximation:
        # pixels may only differ from a full evaluation by being marked capped.
        subdivider, canvas = self.make(48, 32, reference_kernel, max_iter=40, box_sizes=(16, 8, 4))
        subdivider.render(canvas)
        ys, xs = np.indices(canvas.shape)
        flat = reference_kernel(pixel_to_complex(subdivider.region, subdivider.scale, xs, ys), 40)
        differ = canvas.counts != flat
        self.assertTrue(np.all(canvas.counts[differ] == 40))

    def test_clipped_edges_are_covered(self):
        kernel = CountingKernel(escaped_kernel)
        subdivider, canvas = self.make(21, 13, kernel, box_sizes=(8, 4))
        subdivider.render(canvas)
        self.assertTrue(canvas.complete)
        self.assertEqual(kernel.points, 21 * 13)

    def test_deterministic(self):
        first, canvas_a = self.make(40, 24, reference_kernel, max_iter=30, box_sizes=(12, 6, 3))
        second, canvas_b = self.make(40, 24, reference_kernel, max_iter=30, box_sizes=(12, 6, 3))
        first.render(canvas_a)
        second.render(canvas_b)
        np.testing.assert_array_equal(canvas_a.counts, canvas_b.counts)
        np.testing.assert_array_equal(canvas_a.rgba, canvas_b.rgba)
        self.assertEqual(first.stats, second.stats)


class TestScenario(unittest.TestCase):
    """16x16 image centred on (-0.75, 0), zoom 1, cap 50, box sizes [8, 4]."""

    max_iter = 50

    def setUp(self):
        self.region, self.scale = make_geometry(16, 16)
        self.trace = TraceRecorder()

    def render(self, kernel):
        canvas = Canvas(16, 16)
        subdivider = BoxSubdivider(self.region, self.scale, self.max_iter, kernel, Colorizer(), (8, 4),
                                   trace=self.trace)
        return subdivider.render(canvas), canvas

    def test_single_escaping_border_pixel(self):
        target = pixel_to_complex(self.region, self.scale, 5, 0)
        stats, canvas = self.render(CountingKernel(spike_kernel(target)))

        split = self.trace.boxes("split")
        self.assertEqual([(box.x, box.y, box.depth) for box in split], [(0, 0, 0)])
        children = [(box.x, box.y) for box in self.trace.boxes("border") if box.depth == 1]
        self.assertEqual(children, [(0, 0), (4, 0), (0, 4), (4, 4)])
        self.assertEqual([(box.x, box.y) for box in self.trace.boxes("evaluate")], [(4, 0)])

        self.assertEqual(stats.border_samples, 8)
        self.assertEqual(stats.memo_hits, 4)
        self.assertEqual(stats.fills, 6)
        self.assertEqual(stats.splits, 1)
        self.assertEqual(stats.evaluations, 1)
        # 4 * 28 root borders, 4 * 5 fresh child border pixels, 2x2 evaluated interior
        self.assertEqual(stats.kernel_evaluations, 112 + 20 + 4)
        self.assertEqual(stats.filled_pixels, 3 * 36 + 3 * 4)

        expected = np.full((16, 16), self.max_iter)
        expected[0, 5] = 0
        np.testing.assert_array_equal(canvas.counts, expected)

    def test_root_boxes_fill_or_split_into_four(self):
        stats, canvas = self.render(reference_kernel)
        for root in [box for box in self.trace.boxes("border") if box.depth == 0]:
            children = [box for box in self.trace.boxes("border")
                        if box.depth == 1
                        and root.x <= box.x < root.x + 8
                        and root.y <= box.y < root.y + 8]
            if root in self.trace.boxes("split"):
                self.assertEqual(len(children), 4)
                self.assertTrue(all(box.size == 4 for box in children))
            else:
                self.assertIn(root, self.trace.boxes("fill"))
                self.assertEqual(children, [])
        self.assertTrue(canvas.complete)
        self.assertLessEqual(stats.max_depth, 1)


if __name__ == '__main__':
    unittest.main()
