# pic_pixeller/resample.py
from __future__ import annotations

"""
Nearest-neighbour resize to a target width, aspect preserved.

No interpolation: blended pixels would soften the edges the later stages
try to keep.
"""

from typing import Tuple

import numpy as np

from .core_types import PixelBuffer, round_half_up
from .errors import InvalidDimensions


def target_size(width: int, height: int, target_width: int) -> Tuple[int, int]:
    """
    (target_width, round(height * target_width / width)), rounding .5 up.
    Raises InvalidDimensions for empty sources or a zero-height result.
    """
    if width <= 0 or height <= 0:
        raise InvalidDimensions(f"source must be at least 1x1, got {width}x{height}")
    if target_width <= 0:
        raise InvalidDimensions(f"target width must be positive, got {target_width}")
    target_height = round_half_up(height * target_width / width)
    if target_height <= 0:
        raise InvalidDimensions(
            f"{width}x{height} scaled to width {target_width} has zero height"
        )
    return int(target_width), int(target_height)


def source_indices(src_len: int, dst_len: int) -> np.ndarray:
    """floor(i * src_len / dst_len) for i in [0, dst_len), in exact integer maths."""
    return (np.arange(dst_len, dtype=np.int64) * src_len) // dst_len


def resize_nearest(buffer: PixelBuffer, target_width: int) -> PixelBuffer:
    """
    Resize to target_width keeping the aspect ratio.
    Destination (x, y) samples source (floor(x*W/tw), floor(y*H/th)).
    """
    width, height = buffer.size
    dst_w, dst_h = target_size(width, height, target_width)
    xs = source_indices(width, dst_w)
    ys = source_indices(height, dst_h)
    out = buffer.data[ys[:, None], xs[None, :]]
    return PixelBuffer.wrap(out)


__all__ = ["target_size", "source_indices", "resize_nearest"]
