import unittest

import numpy as np

from pic_pixeller.colour_convert import (
    colour_distance,
    luma,
    palette_distances,
    rgb_to_hsl,
    rgb_to_hsl_batch,
    rgb_to_hsl_threaded,
)


class TestRgbToHsl(unittest.TestCase):
    def test_primaries(self):
        h, s, l = rgb_to_hsl(255, 0, 0)
        self.assertAlmostEqual(h, 0.0)
        self.assertAlmostEqual(s, 1.0)
        self.assertAlmostEqual(l, 0.5)
        self.assertAlmostEqual(rgb_to_hsl(0, 255, 0).h, 1 / 3)
        self.assertAlmostEqual(rgb_to_hsl(0, 0, 255).h, 2 / 3)

    def test_grey_has_no_hue_or_saturation(self):
        h, s, l = rgb_to_hsl(128, 128, 128)
        self.assertEqual(h, 0.0)
        self.assertEqual(s, 0.0)
        self.assertAlmostEqual(l, 128 / 255)

    def test_hue_stays_below_one(self):
        # Magenta-ish red sits just under the wrap point.
        h = rgb_to_hsl(255, 0, 1).h
        self.assertGreaterEqual(h, 0.0)
        self.assertLess(h, 1.0)

    def test_batch_matches_scalar(self):
        rng = np.random.default_rng(7)
        rgb = rng.integers(0, 256, size=(200, 3), dtype=np.uint8)
        rgb[:5] = [[0, 0, 0], [255, 255, 255], [90, 90, 90], [255, 0, 0], [0, 0, 255]]
        batch = rgb_to_hsl_batch(rgb)
        for row, got in zip(rgb.tolist(), batch):
            want = rgb_to_hsl(*row)
            np.testing.assert_allclose(got, want, atol=1e-12)

    def test_threaded_matches_batch(self):
        rng = np.random.default_rng(3)
        rgb = rng.integers(0, 256, size=(130, 9, 3), dtype=np.uint8)
        np.testing.assert_array_equal(
            rgb_to_hsl_threaded(rgb, 4), rgb_to_hsl_batch(rgb)
        )


class TestDistance(unittest.TestCase):
    def test_self_distance_is_zero(self):
        for c in [(0, 0, 0), (255, 0, 0), (100, 100, 100), (12, 200, 31)]:
            self.assertEqual(colour_distance(c, c), 0.0)

    def test_symmetric_for_chromatic_colours(self):
        a, b = (255, 0, 0), (0, 128, 255)
        self.assertAlmostEqual(colour_distance(a, b), colour_distance(b, a))

    def test_grey_penalty_only_applies_to_candidate(self):
        red, grey = (255, 0, 0), (100, 100, 100)
        forward = colour_distance(red, grey)
        backward = colour_distance(grey, red)
        self.assertNotEqual(forward, backward)
        self.assertAlmostEqual(forward / backward, 1.5)

    def test_black_candidate_is_not_penalised(self):
        # Weights sum to 1, so a uniform offset of 10 is distance 10.
        self.assertAlmostEqual(colour_distance((10, 10, 10), (0, 0, 0)), 10.0)
        self.assertAlmostEqual(colour_distance((0, 0, 0), (10, 10, 10)), 15.0)

    def test_luma_weights(self):
        self.assertAlmostEqual(float(luma(np.array([255, 255, 255]))), 255.0)
        self.assertAlmostEqual(float(luma(np.array([255, 0, 0]))), 0.299 * 255)

    def test_palette_distances_match_pairwise(self):
        src = np.array([[10, 10, 10], [200, 30, 40], [0, 0, 0]], dtype=np.float64)
        pal = np.array([[0, 0, 0], [128, 128, 128], [255, 0, 0]], dtype=np.float64)
        got = palette_distances(src, pal)
        self.assertEqual(got.shape, (3, 3))
        for i, s in enumerate(src):
            for j, p in enumerate(pal):
                self.assertAlmostEqual(got[i, j], colour_distance(s, p))


if __name__ == "__main__":
    unittest.main()
