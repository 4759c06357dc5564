# pic_pixeller/constants.py
"""
Global tunables used across the project.

- Luma weights and the grey-candidate penalty (colour matching, edge test)
- Palette clustering grid (hue bins x saturation/lightness cells)
- Floyd-Steinberg kernel
- Pipeline defaults and accepted ranges
"""
from __future__ import annotations

from typing import Tuple

# ===================
# Colour metric (ITU)
# ===================
W_R: float = 0.299
W_G: float = 0.587
W_B: float = 0.114

# Distance multiplier for achromatic palette candidates (r == g == b), black excepted.
GREY_PENALTY: float = 1.5

# ===================
# Palette clustering
# ===================
HUE_BINS: int = 12
SL_GRID: int = 4
CELLS_PER_BIN: int = SL_GRID * SL_GRID

# ==============================
# Error diffusion: Floyd-Steinberg
# ==============================
# (dx, dy, weight); weights sum to 16/16.
KERNEL_FS: Tuple[Tuple[int, int, float], ...] = (
    (1, 0, 7 / 16),
    (-1, 1, 3 / 16),
    (0, 1, 5 / 16),
    (1, 1, 1 / 16),
)

# Bound memory for the per-call nearest-colour cache in dither(). Cleared when exceeded.
CACHE_MAX_ENTRIES: int = 200_000

# =================
# Pipeline settings
# =================
TARGET_WIDTH_MIN: int = 8
TARGET_WIDTH_MAX: int = 256
TARGET_WIDTH_DEFAULT: int = 64

COLOR_LIMIT_MIN: int = 2
COLOR_LIMIT_MAX: int = 64
COLOR_LIMIT_DEFAULT: int = 16

# Luma differences live in 0..255.
EDGE_THRESHOLD_MIN: float = 0.0
EDGE_THRESHOLD_MAX: float = 255.0
EDGE_THRESHOLD_DEFAULT: float = 100.0

DITHER_STRENGTH_MIN: float = 0.0
DITHER_STRENGTH_MAX: float = 1.0
DITHER_STRENGTH_DEFAULT: float = 0.3

# Threaded helpers fall back to one thread below this many rows.
MIN_ROWS_FOR_THREADS: int = 64

# ===========
# CLI / files
# ===========
OUTPUT_SUFFIX: str = "_pixel"
IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".webp", ".bmp", ".gif"}
DEMO_SIZE: int = 512
