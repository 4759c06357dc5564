# pic_pixeller/edges.py
from __future__ import annotations

"""
Edge-preserving smoothing.

A pixel is an edge pixel when its luma differs from any in-bounds 8-neighbour
by more than the threshold. Edge pixels pass through; every other pixel is
replaced by the plain RGBA mean of its neighbours. Neighbour reads always come
from the input snapshot, so the result does not depend on scan order.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Tuple

import numpy as np

from .colour_convert import luma
from .constants import MIN_ROWS_FOR_THREADS
from .core_types import PixelBuffer, to_u8_channels

NEIGHBOUR_OFFSETS: Tuple[Tuple[int, int], ...] = tuple(
    (dy, dx) for dy in (-1, 0, 1) for dx in (-1, 0, 1) if (dy, dx) != (0, 0)
)


def edge_mask_and_means(
    rgba: np.ndarray, threshold: float
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Per-pixel edge classification and neighbour statistics.

    Args:
      rgba: uint8 [H,W,4]
      threshold: luma difference above which a neighbour marks an edge
    Returns:
      edge: bool [H,W]
      means: float64 [H,W,4] neighbour RGBA mean (0 where no neighbours)
      counts: int [H,W] in-bounds neighbour count (0..8)
    """
    height, width = rgba.shape[:2]
    src = rgba.astype(np.float64)
    light = luma(src[..., :3])

    # One-pixel border; the valid mask keeps padding out of every statistic.
    light_pad = np.pad(light, 1, mode="constant")
    src_pad = np.pad(src, ((1, 1), (1, 1), (0, 0)), mode="constant")
    valid_pad = np.pad(np.ones((height, width), dtype=bool), 1, mode="constant")

    edge = np.zeros((height, width), dtype=bool)
    sums = np.zeros((height, width, 4), dtype=np.float64)
    counts = np.zeros((height, width), dtype=np.int64)

    for dy, dx in NEIGHBOUR_OFFSETS:
        rows = slice(1 + dy, 1 + dy + height)
        cols = slice(1 + dx, 1 + dx + width)
        nb_valid = valid_pad[rows, cols]
        nb_light = light_pad[rows, cols]
        edge |= nb_valid & (np.abs(light - nb_light) > threshold)
        sums += src_pad[rows, cols]
        counts += nb_valid

    means = np.zeros_like(sums)
    has_nb = counts > 0
    means[has_nb] = sums[has_nb] / counts[has_nb][:, None]
    return edge, means, counts


def _smooth_rows(rgba: np.ndarray, threshold: float) -> np.ndarray:
    """Smooth an RGBA block; returns a new uint8 block of the same shape."""
    edge, means, counts = edge_mask_and_means(rgba, threshold)
    out = rgba.copy()
    smooth = (~edge) & (counts > 0)
    out[smooth] = to_u8_channels(means[smooth])
    return out


def _split_rows_with_halo(
    height: int, parts: int, halo: int
) -> List[Tuple[int, int, int, int]]:
    """Split rows into chunks with a halo so neighbour reads stay exact across seams."""
    parts = max(1, int(parts))
    step = (height + parts - 1) // parts
    out: List[Tuple[int, int, int, int]] = []
    start = 0
    while start < height:
        end = min(start + step, height)
        start_pad = max(0, start - halo)
        end_pad = min(height, end + halo)
        out.append((start, end, start_pad, end_pad))
        start = end
    return out


def preserve_edges(
    buffer: PixelBuffer, threshold: float, workers: int = 1
) -> PixelBuffer:
    """
    Smooth non-edge pixels toward their neighbourhood mean.

    Args:
      buffer: source image (never modified)
      threshold: luma difference that marks an edge, 0..255
      workers: threads for row chunks; results match the single-threaded path
    Returns:
      new PixelBuffer of the same size
    """
    rgba = buffer.data
    height = buffer.height
    if workers <= 1 or height < MIN_ROWS_FOR_THREADS:
        return PixelBuffer.wrap(_smooth_rows(rgba, threshold))

    out = np.empty_like(rgba)
    chunks = _split_rows_with_halo(height, workers, 1)

    def run_one(chunk):
        start, end, start_pad, end_pad = chunk
        sub = _smooth_rows(rgba[start_pad:end_pad], threshold)
        core = sub[(start - start_pad) : (start - start_pad) + (end - start)]
        return (start, end, core)

    with ThreadPoolExecutor(max_workers=workers) as ex:
        for start, end, core in ex.map(run_one, chunks):
            out[start:end] = core
    return PixelBuffer.wrap(out)


__all__ = ["NEIGHBOUR_OFFSETS", "edge_mask_and_means", "preserve_edges"]
