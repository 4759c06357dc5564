# pic_pixeller/colour_convert.py
from __future__ import annotations

"""
Colour conversions and metrics.

Exports:
  rgb_to_hsl(r, g, b)
  rgb_to_hsl_batch(rgb)
  rgb_to_hsl_threaded(rgb, workers)
  luma(rgb)
  colour_distance(a, b)
  palette_distances(src_rgb, pal_rgb)
"""

import math
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from .constants import GREY_PENALTY, MIN_ROWS_FOR_THREADS, W_B, W_G, W_R
from .core_types import HSL, F64Rows
from .utils import split_rows_into_parts


# RGB to HSL


def rgb_to_hsl(r: float, g: float, b: float) -> HSL:
    """
    RGB in 0..255 to HSL in [0,1).
    Grey input (max == min) gives h = s = 0. Red wins hue ties, then green.
    """
    r, g, b = r / 255.0, g / 255.0, b / 255.0
    mx = max(r, g, b)
    mn = min(r, g, b)
    lightness = (mx + mn) / 2.0

    if mx == mn:
        return HSL(0.0, 0.0, lightness)

    d = mx - mn
    sat = d / (2.0 - mx - mn) if lightness > 0.5 else d / (mx + mn)
    if mx == r:
        hue = (g - b) / d + (6.0 if g < b else 0.0)
    elif mx == g:
        hue = (b - r) / d + 2.0
    else:
        hue = (r - g) / d + 4.0
    hue /= 6.0
    if hue >= 1.0:
        hue = 0.0
    return HSL(hue, sat, lightness)


def rgb_to_hsl_batch(rgb: np.ndarray) -> F64Rows:
    """
    Vectorised rgb_to_hsl. Accepts (...,3) in 0..255, returns float64 (...,3)
    holding (h, s, l). Matches the scalar routine value for value.
    """
    rgb_f = np.asarray(rgb, dtype=np.float64) / 255.0
    r = rgb_f[..., 0]
    g = rgb_f[..., 1]
    b = rgb_f[..., 2]
    mx = np.maximum(np.maximum(r, g), b)
    mn = np.minimum(np.minimum(r, g), b)
    lightness = (mx + mn) / 2.0
    d = mx - mn
    grey = d == 0.0

    # Grey pixels would divide by zero; their results are masked below.
    d_safe = np.where(grey, 1.0, d)
    sat_den = np.where(lightness > 0.5, 2.0 - mx - mn, mx + mn)
    sat = np.where(grey, 0.0, d_safe / np.where(grey, 1.0, sat_den))

    hue_r = (g - b) / d_safe + np.where(g < b, 6.0, 0.0)
    hue_g = (b - r) / d_safe + 2.0
    hue_b = (r - g) / d_safe + 4.0
    hue = np.select([mx == r, mx == g], [hue_r, hue_g], default=hue_b) / 6.0
    hue = np.where(grey | (hue >= 1.0), 0.0, hue)

    out = np.empty(rgb_f.shape, dtype=np.float64)
    out[..., 0] = hue
    out[..., 1] = sat
    out[..., 2] = lightness
    return out


def rgb_to_hsl_threaded(rgb: np.ndarray, workers: int) -> F64Rows:
    """
    Threaded RGB->HSL conversion by splitting rows.

    Args:
      rgb: array [H,W,3] in 0..255
      workers: number of threads; if <=1 or H is small, runs single-threaded
    Returns:
      float64 array [H,W,3]
    """
    height = int(rgb.shape[0])
    if workers <= 1 or height < MIN_ROWS_FOR_THREADS:
        return rgb_to_hsl_batch(rgb)

    chunks = split_rows_into_parts(height, workers)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(rgb_to_hsl_batch, rgb[s:e]) for s, e in chunks]
        parts = [f.result() for f in futures]
    return np.concatenate(parts, axis=0)


# Luma and distance


def luma(rgb: np.ndarray) -> NDArray[np.float64]:
    """Perceptual brightness 0.299 R + 0.587 G + 0.114 B over the last axis."""
    rgb_f = np.asarray(rgb, dtype=np.float64)
    return W_R * rgb_f[..., 0] + W_G * rgb_f[..., 1] + W_B * rgb_f[..., 2]


def _is_penalised_grey(r: float, g: float, b: float) -> bool:
    return r == g == b and r != 0


def colour_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Weighted Euclidean RGB distance. The grey penalty only looks at the
    candidate `b`, so colour_distance(a, b) != colour_distance(b, a) when
    exactly one side is a non-black grey.
    """
    dr = float(a[0]) - float(b[0])
    dg = float(a[1]) - float(b[1])
    db = float(a[2]) - float(b[2])
    dist = math.sqrt(W_R * dr * dr + W_G * dg * dg + W_B * db * db)
    if _is_penalised_grey(float(b[0]), float(b[1]), float(b[2])):
        dist *= GREY_PENALTY
    return dist


def grey_penalty_factors(pal_rgb: np.ndarray) -> NDArray[np.float64]:
    """Per-entry distance multiplier: GREY_PENALTY for non-black greys, else 1."""
    pal = np.asarray(pal_rgb, dtype=np.float64).reshape(-1, 3)
    grey = (pal[:, 0] == pal[:, 1]) & (pal[:, 1] == pal[:, 2]) & (pal[:, 0] != 0.0)
    return np.where(grey, GREY_PENALTY, 1.0)


def palette_distances(src_rgb: np.ndarray, pal_rgb: np.ndarray) -> NDArray[np.float64]:
    """
    colour_distance from every source row to every palette row.

    Args:
      src_rgb: float (...,3) source colours (may be off-grid after error feedback)
      pal_rgb: (P,3) palette colours
    Returns:
      float64 (...,P)
    """
    src = np.asarray(src_rgb, dtype=np.float64)
    pal = np.asarray(pal_rgb, dtype=np.float64).reshape(-1, 3)
    dr = src[..., 0, None] - pal[:, 0]
    dg = src[..., 1, None] - pal[:, 1]
    db = src[..., 2, None] - pal[:, 2]
    dist = np.sqrt(W_R * dr * dr + W_G * dg * dg + W_B * db * db)
    return dist * grey_penalty_factors(pal)


__all__ = [
    "rgb_to_hsl",
    "rgb_to_hsl_batch",
    "rgb_to_hsl_threaded",
    "luma",
    "colour_distance",
    "grey_penalty_factors",
    "palette_distances",
]
