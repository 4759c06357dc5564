import unittest

import numpy as np

from pic_pixeller.core_types import Palette, PaletteItem, PixelBuffer
from pic_pixeller.errors import InvalidPalette
from pic_pixeller.palette_build import build_palette
from pic_pixeller.reduce import (
    CHUNK_ROWS,
    distribute_error,
    dither,
    nearest_palette_index,
    nearest_palette_indices,
    quantize,
)


def colours_in(buffer):
    return {tuple(px) for px in buffer.data.reshape(-1, 4).tolist()}


class TestQuantize(unittest.TestCase):
    def setUp(self):
        rng = np.random.default_rng(42)
        self.image = PixelBuffer.from_array(
            rng.integers(0, 256, size=(24, 32, 3), dtype=np.uint8)
        )
        self.palette = build_palette(self.image, 8)

    def test_near_black_grey_picks_black(self):
        buf = PixelBuffer.filled(8, 8, (10, 10, 10))
        palette = Palette.from_rgb([[0, 0, 0], [255, 0, 0]])
        out = quantize(buf, palette)
        self.assertEqual(colours_in(out), {(0, 0, 0, 255)})

    def test_idempotent(self):
        once = quantize(self.image, self.palette)
        self.assertEqual(quantize(once, self.palette), once)

    def test_output_only_uses_palette(self):
        out = quantize(self.image, self.palette)
        allowed = {item.rgba for item in self.palette}
        self.assertTrue(colours_in(out) <= allowed)

    def test_tie_goes_to_first_entry(self):
        buf = PixelBuffer.filled(2, 2, (100, 0, 0))
        palette = Palette.from_rgb([[90, 0, 0], [110, 0, 0]])
        self.assertEqual(colours_in(quantize(buf, palette)), {(90, 0, 0, 255)})
        self.assertEqual(nearest_palette_index((100, 0, 0), palette.rgb_matrix), 0)

    def test_output_is_opaque(self):
        arr = np.zeros((2, 3, 4), dtype=np.uint8)
        arr[..., 0] = 250
        out = quantize(PixelBuffer.from_array(arr), Palette.from_rgb([[255, 0, 0]]))
        self.assertEqual(colours_in(out), {(255, 0, 0, 255)})

    def test_threaded_indices_match(self):
        rng = np.random.default_rng(9)
        src = rng.integers(0, 256, size=(CHUNK_ROWS * 2 + 17, 3))
        pal = self.palette.rgb_matrix
        np.testing.assert_array_equal(
            nearest_palette_indices(src, pal, workers=4),
            nearest_palette_indices(src, pal, workers=1),
        )

    def test_empty_palette_is_rejected(self):
        with self.assertRaises(InvalidPalette):
            Palette(())

    def test_palette_channels_checked_before_rounding(self):
        for rgb in [(-0.4, 0, 0), (0, 255.2, 0), (0, 0, float("inf")), (0, "1", 0)]:
            with self.subTest(rgb=rgb):
                with self.assertRaises(InvalidPalette):
                    Palette((PaletteItem(rgb=rgb),))

    def test_fractional_palette_channels_round_half_up(self):
        palette = Palette((PaletteItem(rgb=(100.6, 0, 0)),))
        self.assertEqual(palette.colours(), [(101, 0, 0)])
        np.testing.assert_array_equal(palette.rgb_matrix, [[101.0, 0.0, 0.0]])
        buf = PixelBuffer.filled(2, 2, (100, 0, 0))
        self.assertEqual(colours_in(quantize(buf, palette)), {(101, 0, 0, 255)})
        self.assertEqual(colours_in(dither(buf, palette, 1.0)), {(101, 0, 0, 255)})


class TestDither(unittest.TestCase):
    def setUp(self):
        rng = np.random.default_rng(5)
        self.image = PixelBuffer.from_array(
            rng.integers(0, 256, size=(20, 24, 3), dtype=np.uint8)
        )
        self.palette = build_palette(self.image, 6)

    def test_zero_strength_equals_quantize(self):
        self.assertEqual(
            dither(self.image, self.palette, 0.0), quantize(self.image, self.palette)
        )

    def test_output_only_uses_palette(self):
        out = dither(self.image, self.palette, 1.0)
        allowed = {item.rgba for item in self.palette}
        self.assertTrue(colours_in(out) <= allowed)
        self.assertEqual(out.size, self.image.size)

    def test_single_colour_image_unchanged(self):
        buf = PixelBuffer.filled(6, 5, (200, 50, 50, 255))
        palette = build_palette(buf, 16)
        self.assertEqual(len(palette), 1)
        self.assertEqual(quantize(buf, palette), buf)
        self.assertEqual(dither(buf, palette, 1.0), buf)

    def test_error_feedback_mixes_colours(self):
        buf = PixelBuffer.filled(16, 16, (128, 128, 128))
        palette = Palette.from_rgb([[0, 0, 0], [255, 255, 255]])
        # Grey penalty pushes plain matching to black everywhere.
        self.assertEqual(colours_in(quantize(buf, palette)), {(0, 0, 0, 255)})
        self.assertEqual(
            colours_in(dither(buf, palette, 1.0)),
            {(0, 0, 0, 255), (255, 255, 255, 255)},
        )

    def test_deterministic(self):
        a = dither(self.image, self.palette, 0.6)
        b = dither(self.image, self.palette, 0.6)
        self.assertEqual(a, b)


class TestDistributeError(unittest.TestCase):
    def test_weights_from_inner_pixel(self):
        errors = np.zeros((3, 3, 3))
        distribute_error(errors, (16.0, 0.0, 0.0), 1, 0)
        self.assertAlmostEqual(errors[0][2][0], 7.0)
        self.assertAlmostEqual(errors[1][0][0], 3.0)
        self.assertAlmostEqual(errors[1][1][0], 5.0)
        self.assertAlmostEqual(errors[1][2][0], 1.0)
        self.assertAlmostEqual(errors.sum(), 16.0)
        self.assertEqual(errors[..., 1:].sum(), 0.0)

    def test_out_of_bounds_share_is_dropped(self):
        errors = np.zeros((3, 3, 3))
        distribute_error(errors, (16.0, 0.0, 0.0), 0, 0)
        self.assertAlmostEqual(errors[0][1][0], 7.0)
        self.assertAlmostEqual(errors[1][0][0], 5.0)
        self.assertAlmostEqual(errors[1][1][0], 1.0)
        self.assertAlmostEqual(errors.sum(), 13.0)

    def test_last_pixel_spreads_nothing(self):
        errors = np.zeros((3, 3, 3))
        distribute_error(errors, (16.0, 16.0, 16.0), 2, 2)
        self.assertEqual(errors.sum(), 0.0)


if __name__ == "__main__":
    unittest.main()
