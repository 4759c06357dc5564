# pic_pixeller/palette_build.py
from __future__ import annotations

"""
Palette construction by hue-binned clustering.

Pixels are split into 12 hue bins first so that one dominant hue cannot
starve the rest of the colour wheel. Inside each bin a 4x4
saturation x lightness grid averages the pixels; each bin contributes its
ceil(limit / 12) busiest cells, and the pooled cells then compete on pixel
count for the final `limit` slots.

Ordering is fully deterministic: equal counts sort by ascending hue bin,
then ascending cell index (s_index * 4 + l_index).

Exports:
  cell_statistics(rgb, workers=1) -> (sums [192,3], counts [192])
  palette_cells(buffer, colour_limit, workers=1) -> list[CellColour]
  build_palette(buffer, colour_limit, workers=1) -> Palette
"""

import math
from typing import List, Tuple

import numpy as np

from .colour_convert import rgb_to_hsl_threaded
from .constants import CELLS_PER_BIN, HUE_BINS, SL_GRID
from .core_types import CellColour, Palette, PixelBuffer, RGBTuple, round_half_up
from .errors import InvalidConfig


def _grid_index(values: np.ndarray, steps: int) -> np.ndarray:
    """floor(v * steps) clamped to [0, steps-1]; v == 1.0 lands in the last step."""
    return np.clip(np.floor(values * steps).astype(np.int64), 0, steps - 1)


def cell_ids(hsl: np.ndarray) -> np.ndarray:
    """Flat cell id hue_bin * 16 + s_index * 4 + l_index for (...,3) HSL rows."""
    hue_bin = _grid_index(hsl[..., 0], HUE_BINS)
    s_idx = _grid_index(hsl[..., 1], SL_GRID)
    l_idx = _grid_index(hsl[..., 2], SL_GRID)
    return hue_bin * CELLS_PER_BIN + s_idx * SL_GRID + l_idx


def cell_statistics(rgb: np.ndarray, workers: int = 1) -> Tuple[np.ndarray, np.ndarray]:
    """
    Running RGB sums and pixel counts for every hue-bin / grid cell.

    Args:
      rgb: uint8 [H,W,3]
      workers: threads for the HSL conversion
    Returns:
      sums: float64 [HUE_BINS*16, 3]
      counts: int64 [HUE_BINS*16]
    """
    hsl = rgb_to_hsl_threaded(rgb, workers).reshape(-1, 3)
    ids = cell_ids(hsl)
    flat_rgb = np.asarray(rgb, dtype=np.float64).reshape(-1, 3)
    n_cells = HUE_BINS * CELLS_PER_BIN
    counts = np.bincount(ids, minlength=n_cells).astype(np.int64, copy=False)
    sums = np.stack(
        [np.bincount(ids, weights=flat_rgb[:, c], minlength=n_cells) for c in range(3)],
        axis=1,
    )
    return sums, counts


def _check_limit(colour_limit: int) -> int:
    if isinstance(colour_limit, bool) or not isinstance(colour_limit, (int, np.integer)):
        raise InvalidConfig(f"colour limit must be an integer, got {colour_limit!r}")
    if colour_limit < 1:
        raise InvalidConfig(f"colour limit must be at least 1, got {colour_limit}")
    return int(colour_limit)


def palette_cells(
    buffer: PixelBuffer, colour_limit: int, workers: int = 1
) -> List[CellColour]:
    """
    Kept cells from every hue bin, pooled and sorted by weight (busiest first).
    The list is not truncated to colour_limit; build_palette does that.
    """
    limit = _check_limit(colour_limit)
    per_bin = math.ceil(limit / HUE_BINS)
    sums, counts = cell_statistics(buffer.rgb, workers)

    pooled: List[CellColour] = []
    for hue_bin in range(HUE_BINS):
        base = hue_bin * CELLS_PER_BIN
        bin_counts = counts[base : base + CELLS_PER_BIN]
        occupied = np.nonzero(bin_counts)[0]
        if occupied.size == 0:
            continue
        # Stable sort keeps ascending cell order among equal counts.
        order = occupied[np.argsort(-bin_counts[occupied], kind="stable")]
        for cell in order[:per_bin].tolist():
            n = int(bin_counts[cell])
            mean = sums[base + cell] / n
            rgb: RGBTuple = (
                round_half_up(mean[0]),
                round_half_up(mean[1]),
                round_half_up(mean[2]),
            )
            pooled.append(CellColour(rgb=rgb, count=n, hue_bin=hue_bin, cell=int(cell)))

    pooled.sort(key=lambda c: (-c.count, c.hue_bin, c.cell))
    return pooled


def build_palette(buffer: PixelBuffer, colour_limit: int, workers: int = 1) -> Palette:
    """
    Representative palette of at most colour_limit opaque colours.
    Never padded: an image with fewer occupied cells yields a shorter palette.
    """
    cells = palette_cells(buffer, colour_limit, workers)
    return Palette(tuple(c.finalize() for c in cells[: int(colour_limit)]))


__all__ = ["cell_ids", "cell_statistics", "palette_cells", "build_palette"]
