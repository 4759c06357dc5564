# pic_pixeller/reduce.py
from __future__ import annotations

"""
Colour reduction against a fixed palette.

- quantize: every pixel independently snaps to its nearest palette entry.
- dither: Floyd-Steinberg error diffusion with adjustable feedback strength.

Both use colour_convert.palette_distances, and ties go to the earliest
palette entry, so palette order matters. Output pixels take the chosen
entry's RGBA, which makes every output pixel opaque.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Sequence, Tuple

import numpy as np

from .colour_convert import palette_distances
from .constants import CACHE_MAX_ENTRIES, KERNEL_FS
from .core_types import Palette, PixelBuffer
from .errors import InvalidPalette
from .utils import print_progress_line, unique_rgb_with_inverse

# Source rows scored per distance call; bounds the (N, P) temporaries.
CHUNK_ROWS = 16_384


def _require_palette(palette: Palette) -> None:
    if len(palette) == 0:
        raise InvalidPalette("palette must contain at least one colour")


def nearest_palette_index(colour: Sequence[float], pal_rgb: np.ndarray) -> int:
    """Index of the closest palette row; the first one wins a tie."""
    dists = palette_distances(np.asarray(colour, dtype=np.float64)[:3], pal_rgb)
    return int(np.argmin(dists))


def nearest_palette_indices(
    src_rgb: np.ndarray, pal_rgb: np.ndarray, workers: int = 1
) -> np.ndarray:
    """
    nearest_palette_index for every source row.

    Args:
      src_rgb: [N,3] colours
      pal_rgb: [P,3] palette
      workers: threads over row chunks
    Returns:
      int64 [N]
    """
    src = np.asarray(src_rgb, dtype=np.float64).reshape(-1, 3)
    n = src.shape[0]
    out = np.empty((n,), dtype=np.int64)
    spans = [(s, min(s + CHUNK_ROWS, n)) for s in range(0, n, CHUNK_ROWS)]

    def run_one(span: Tuple[int, int]) -> Tuple[int, int, np.ndarray]:
        s, e = span
        return s, e, np.argmin(palette_distances(src[s:e], pal_rgb), axis=1)

    if workers <= 1 or len(spans) <= 1:
        for span in spans:
            s, e, idx = run_one(span)
            out[s:e] = idx
        return out

    with ThreadPoolExecutor(max_workers=workers) as ex:
        for s, e, idx in ex.map(run_one, spans):
            out[s:e] = idx
    return out


def quantize(buffer: PixelBuffer, palette: Palette, workers: int = 1) -> PixelBuffer:
    """
    Replace each pixel by its nearest palette colour (no error feedback).
    Unique colours are scored once and mapped back. Idempotent for a fixed palette.
    """
    _require_palette(palette)
    unique_rgb, inverse_idx = unique_rgb_with_inverse(buffer.rgb)
    nearest = nearest_palette_indices(unique_rgb, palette.rgb_matrix, workers)
    out = palette.rgba_matrix[nearest[inverse_idx]]
    return PixelBuffer.wrap(out.reshape(buffer.height, buffer.width, 4))


def distribute_error(
    errors: np.ndarray, residual: Sequence[float], x: int, y: int
) -> None:
    """
    Push a residual into the not-yet-visited Floyd-Steinberg neighbours of (x, y):
      right 7/16, below-left 3/16, below 5/16, below-right 1/16.
    Targets outside the grid are dropped, not wrapped. Mutates `errors` [H,W,3].
    """
    height, width = errors.shape[:2]
    res = np.asarray(residual, dtype=np.float64)
    for dx, dy, weight in KERNEL_FS:
        nx, ny = x + dx, y + dy
        if 0 <= nx < width and 0 <= ny < height:
            errors[ny, nx] += res * weight


def dither(
    buffer: PixelBuffer,
    palette: Palette,
    strength: float,
    *,
    progress: bool = False,
) -> PixelBuffer:
    """
    Floyd-Steinberg error diffusion in RGB, strict row-major scan.

    Each pixel is matched after adding strength * accumulated error; the
    residual against the chosen entry then spreads forward. strength 0 gives
    the same result as quantize, 1 is classic Floyd-Steinberg.

    Args:
      buffer: source image
      palette: non-empty palette
      strength: 0..1 error feedback
      progress: print a percent line per row
    Returns:
      new PixelBuffer of the same size
    """
    _require_palette(palette)
    height, width = buffer.height, buffer.width
    pal_rgb = palette.rgb_matrix
    pal_rgba = palette.rgba_matrix
    pal_rows = pal_rgb.tolist()
    k = float(strength)

    src_rows = buffer.rgb.astype(np.float64).tolist()
    errors = np.zeros((height, width, 3), dtype=np.float64)
    out = np.empty((height, width, 4), dtype=np.uint8)

    # Exact adjusted colour -> palette index; repeated flat areas hit this often.
    nearest_cache: Dict[Tuple[float, float, float], int] = {}
    last_pct = -1

    for y in range(height):
        src_row = src_rows[y]
        for x in range(width):
            r0, g0, b0 = src_row[x]
            er, eg, eb = errors[y, x].tolist()
            adjusted = (r0 + er * k, g0 + eg * k, b0 + eb * k)

            j = nearest_cache.get(adjusted)
            if j is None:
                j = nearest_palette_index(adjusted, pal_rgb)
                if len(nearest_cache) >= CACHE_MAX_ENTRIES:
                    nearest_cache.clear()
                nearest_cache[adjusted] = j

            out[y, x] = pal_rgba[j]
            chosen = pal_rows[j]
            distribute_error(
                errors,
                (
                    adjusted[0] - chosen[0],
                    adjusted[1] - chosen[1],
                    adjusted[2] - chosen[2],
                ),
                x,
                y,
            )

        if progress:
            pct = int(100 * (y + 1) / height)
            if pct > last_pct:
                print_progress_line(f"[dither] {pct:3d}%", final=(y + 1 == height))
                last_pct = pct

    return PixelBuffer.wrap(out)


__all__ = [
    "nearest_palette_index",
    "nearest_palette_indices",
    "quantize",
    "distribute_error",
    "dither",
]
