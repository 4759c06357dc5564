import io
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

import numpy as np
from PIL import Image

import pixelate
from pic_pixeller.core_types import PixelBuffer
from pic_pixeller.image_io import (
    buffer_to_image,
    is_image_file,
    load_image,
    make_demo_image,
    save_png,
)
from pic_pixeller.palette_text import load_palette_file, save_palette_file


def write_gradient_png(path, width=40, height=20):
    arr = np.zeros((height, width, 3), dtype=np.uint8)
    arr[..., 0] = np.linspace(0, 255, width).astype(np.uint8)[None, :]
    arr[..., 1] = np.linspace(0, 255, height).astype(np.uint8)[:, None]
    arr[..., 2] = 90
    Image.fromarray(arr).save(path)
    return path


def run_cli(argv):
    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        code = pixelate.main(argv)
    return code, out.getvalue(), err.getvalue()


class TestImageIO(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_png_round_trip(self):
        rng = np.random.default_rng(2)
        buf = PixelBuffer.from_array(rng.integers(0, 256, size=(7, 9, 4), dtype=np.uint8))
        path = save_png(self.tmp / "out.png", buf)
        self.assertEqual(load_image(path), buf)

    def test_save_forces_png_suffix(self):
        buf = PixelBuffer.filled(3, 3, (1, 2, 3))
        path = save_png(self.tmp / "nested" / "out.jpg", buf)
        self.assertEqual(path.suffix, ".png")
        self.assertTrue(path.exists())
        self.assertTrue(is_image_file(path))

    def test_rgb_files_load_opaque(self):
        path = write_gradient_png(self.tmp / "g.png")
        buf = load_image(path)
        self.assertEqual(buf.size, (40, 20))
        self.assertTrue((buf.alpha == 255).all())

    def test_non_image_detected(self):
        path = self.tmp / "notes.png"
        path.write_text("hello", encoding="utf-8")
        self.assertFalse(is_image_file(path))

    def test_demo_image(self):
        demo = make_demo_image()
        self.assertEqual(demo.size, (512, 512))
        self.assertEqual(demo.pixel(256, 256), (255, 255, 255, 255))
        self.assertEqual(demo.pixel(178, 178), (0x2C, 0x3E, 0x50, 255))
        self.assertEqual(demo.pixel(0, 0), (255, 107, 107, 255))
        self.assertEqual(buffer_to_image(demo).mode, "RGBA")


class TestCli(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_single_file(self):
        src = write_gradient_png(self.tmp / "in.png")
        palette_path = self.tmp / "palette.txt"
        code, out, _ = run_cli(
            [
                str(src),
                "--width", "16",
                "--colours", "4",
                "--jobs", "1",
                "--workers", "1",
                "--export-palette", str(palette_path),
            ]
        )
        self.assertEqual(code, 0)
        self.assertIn("Wrote in_pixel.png", out)
        with Image.open(self.tmp / "in_pixel.png") as im:
            self.assertEqual(im.size, (16, 8))
        self.assertLessEqual(len(load_palette_file(palette_path)), 4)

    def test_supplied_palette_file(self):
        src = write_gradient_png(self.tmp / "in.png")
        pal = save_palette_file(self.tmp / "p.txt", [[0, 0, 0], [255, 255, 255]])
        outdir = self.tmp / "out"
        code, _, _ = run_cli(
            [str(src), "--palette", str(pal), "--outdir", str(outdir), "--no-dither"]
        )
        self.assertEqual(code, 0)
        out = load_image(outdir / "in_pixel.png")
        used = {tuple(px) for px in out.rgb.reshape(-1, 3).tolist()}
        self.assertTrue(used <= {(0, 0, 0), (255, 255, 255)})

    def test_folder_skips_previous_outputs(self):
        write_gradient_png(self.tmp / "a.png")
        write_gradient_png(self.tmp / "b.png", 30, 30)
        write_gradient_png(self.tmp / "old_pixel.png")
        self.assertEqual(
            [p.name for p in pixelate.list_images(self.tmp)], ["a.png", "b.png"]
        )
        code, out, _ = run_cli([str(self.tmp), "--width", "8", "--jobs", "2"])
        self.assertEqual(code, 0)
        self.assertLess(out.index("=== a.png ==="), out.index("=== b.png ==="))
        self.assertTrue((self.tmp / "a_pixel.png").exists())
        self.assertTrue((self.tmp / "b_pixel.png").exists())
        self.assertFalse((self.tmp / "old_pixel_pixel.png").exists())

    def test_demo(self):
        code, _, _ = run_cli(["--demo", "--width", "16", "--outdir", str(self.tmp)])
        self.assertEqual(code, 0)
        with Image.open(self.tmp / "demo_pixel.png") as im:
            self.assertEqual(im.size, (16, 16))

    def test_invalid_settings_exit_2(self):
        src = write_gradient_png(self.tmp / "in.png")
        code, _, err = run_cli([str(src), "--width", "4"])
        self.assertEqual(code, 2)
        self.assertIn("[error]", err)
        self.assertFalse((self.tmp / "in_pixel.png").exists())

    def test_bad_palette_file_exit_2(self):
        src = write_gradient_png(self.tmp / "in.png")
        bad = self.tmp / "bad.txt"
        bad.write_text("[[1,2]]", encoding="utf-8")
        code, _, err = run_cli([str(src), "--palette", str(bad)])
        self.assertEqual(code, 2)
        self.assertIn("colour 0", err)

    def test_palette_file_not_utf8_exit_2(self):
        src = write_gradient_png(self.tmp / "in.png")
        bad = self.tmp / "bad.txt"
        bad.write_bytes(b"\xff\xfe[[1,2,3]]")
        code, _, err = run_cli([str(src), "--palette", str(bad)])
        self.assertEqual(code, 2)
        self.assertIn("[error]", err)

    def test_demo_unwritable_outdir_exit_2(self):
        blocker = self.tmp / "not_a_dir"
        blocker.write_text("x", encoding="utf-8")
        code, _, err = run_cli(["--demo", "--width", "8", "--outdir", str(blocker)])
        self.assertEqual(code, 2)
        self.assertIn("[error] demo", err)

    def test_missing_input(self):
        code, _, _ = run_cli([str(self.tmp / "nope.png")])
        self.assertEqual(code, 2)
        code, _, _ = run_cli([])
        self.assertEqual(code, 2)


if __name__ == "__main__":
    unittest.main()
