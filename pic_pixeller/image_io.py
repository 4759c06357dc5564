# pic_pixeller/image_io.py
from __future__ import annotations

import io
from pathlib import Path
from typing import Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageOps, UnidentifiedImageError

from .constants import DEMO_SIZE
from .core_types import PixelBuffer

"""
Image I/O helpers (RGBA in sRGB) and the built-in demo image.
"""

try:
    from PIL import ImageCms  # ICC conversion if profile present
except ImportError:  # pragma: no cover
    ImageCms = None  # type: ignore[assignment]


def _convert_to_srgb_rgba(im: Image.Image) -> Image.Image:
    im = ImageOps.exif_transpose(im)
    icc_bytes = im.info.get("icc_profile")

    if icc_bytes and ImageCms is not None:
        try:
            src_prof = ImageCms.ImageCmsProfile(io.BytesIO(icc_bytes))
            dst_prof = ImageCms.createProfile("sRGB")
            im2 = ImageCms.profileToProfile(
                im,
                src_prof,
                dst_prof,
                renderingIntent=ImageCms.Intent.PERCEPTUAL,
                outputMode="RGBA",
            )
            if im2 is None:
                return im.convert("RGBA")
            return im2
        except (ImageCms.PyCMSError, OSError, ValueError):
            return im.convert("RGBA")

    return im.convert("RGBA")


def image_to_buffer(im: Image.Image) -> PixelBuffer:
    """Pillow image (any mode) to an RGBA PixelBuffer."""
    arr = np.array(im.convert("RGBA"), dtype=np.uint8)
    return PixelBuffer.wrap(arr)


def buffer_to_image(buffer: PixelBuffer) -> Image.Image:
    return Image.fromarray(np.array(buffer.data))


def load_image(path: Path) -> PixelBuffer:
    """Open any Pillow-readable image, honour EXIF rotation and ICC, return RGBA."""
    with Image.open(path) as im0:
        im = _convert_to_srgb_rgba(im0)
    return image_to_buffer(im)


def save_png(path: Path, buffer: PixelBuffer) -> Path:
    """Write an RGBA PNG, forcing the .png suffix. Creates parent folders."""
    path = Path(path)
    if path.suffix.lower() != ".png":
        path = path.with_suffix(".png")
    path.parent.mkdir(parents=True, exist_ok=True)
    buffer_to_image(buffer).save(path, format="PNG")
    return path


def is_image_file(path: Path) -> bool:
    try:
        with Image.open(path) as im:
            im.seek(0)
            im.load()
        return True
    except (UnidentifiedImageError, OSError):
        return False


# Demo image

# Diagonal gradient stops: (offset, rgb)
DEMO_STOPS: Tuple[Tuple[float, Tuple[int, int, int]], ...] = (
    (0.0, (0xFF, 0x6B, 0x6B)),
    (0.5, (0x4E, 0xCD, 0xC4)),
    (1.0, (0x45, 0xB7, 0xD1)),
)
DEMO_CIRCLE_RADIUS = 100
DEMO_SQUARE_SIDE = 100
DEMO_CIRCLE_RGB = (0xFF, 0xFF, 0xFF)
DEMO_SQUARE_RGB = (0x2C, 0x3E, 0x50)


def _linear_gradient(
    width: int, height: int, stops: Sequence[Tuple[float, Tuple[int, int, int]]]
) -> np.ndarray:
    """Top-left to bottom-right gradient sampled at pixel centres. uint8 [H,W,3]."""
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64) + 0.5
    t = (xs * width + ys * height) / float(width * width + height * height)
    t = np.clip(t, 0.0, 1.0)
    offsets = np.array([s[0] for s in stops], dtype=np.float64)
    colours = np.array([s[1] for s in stops], dtype=np.float64)
    out = np.stack([np.interp(t, offsets, colours[:, c]) for c in range(3)], axis=-1)
    return np.clip(np.floor(out + 0.5), 0, 255).astype(np.uint8)


def make_demo_image(width: int = DEMO_SIZE, height: int = DEMO_SIZE) -> PixelBuffer:
    """
    Gradient backdrop with a white disc in the centre and a dark square at
    (W/4, H/4). Used when no input file is given.
    """
    im = Image.fromarray(_linear_gradient(width, height, DEMO_STOPS))
    draw = ImageDraw.Draw(im)
    cx, cy, r = width / 2.0, height / 2.0, DEMO_CIRCLE_RADIUS
    draw.ellipse((cx - r, cy - r, cx + r, cy + r), fill=DEMO_CIRCLE_RGB)
    x0, y0 = width // 4, height // 4
    draw.rectangle(
        (x0, y0, x0 + DEMO_SQUARE_SIDE - 1, y0 + DEMO_SQUARE_SIDE - 1),
        fill=DEMO_SQUARE_RGB,
    )
    return image_to_buffer(im)


__all__ = [
    "image_to_buffer",
    "buffer_to_image",
    "load_image",
    "save_png",
    "is_image_file",
    "make_demo_image",
]
