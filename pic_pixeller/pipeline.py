# pic_pixeller/pipeline.py
from __future__ import annotations

"""
Conversion pipeline.

  resize -> (edge-preserve) -> palette (supplied or built) -> dither | quantize

Every stage returns a new PixelBuffer. All configuration and palette checks
run before the first pixel is touched, so a failing call never leaves a
partial result behind.
"""

import time
from typing import NamedTuple

from .config import PipelineConfig
from .core_types import GeneratedPalette, Palette, PixelBuffer, SuppliedPalette
from .edges import preserve_edges
from .errors import InvalidConfig
from .palette_build import build_palette
from .reduce import dither, quantize
from .resample import resize_nearest, target_size
from .utils import debug_log, format_seconds_compact, key_value_pairs_to_string


class ConversionResult(NamedTuple):
    """Converted image plus the palette it was reduced to."""

    image: PixelBuffer
    palette: Palette


def _select_palette(
    buffer: PixelBuffer, config: PipelineConfig, workers: int
) -> Palette:
    source = config.palette_source
    if isinstance(source, SuppliedPalette):
        return source.palette
    if isinstance(source, GeneratedPalette):
        return build_palette(buffer, source.color_limit, workers)
    raise InvalidConfig(f"unknown palette source {source!r}")


def convert_with_palette(
    buffer: PixelBuffer,
    config: PipelineConfig,
    *,
    workers: int = 1,
    debug: bool = False,
    progress: bool = False,
) -> ConversionResult:
    """
    Run the full pipeline and also return the palette that was used, so a
    caller can feed it back as a SuppliedPalette on the next run.

    Raises:
      InvalidConfig, InvalidPalette: bad settings (checked first)
      InvalidDimensions: the output would be empty
    """
    config.validate()
    dst_w, dst_h = target_size(buffer.width, buffer.height, config.target_width)

    t0 = time.perf_counter()
    image = resize_nearest(buffer, config.target_width)
    t_resize = time.perf_counter()

    if config.preserve_edges:
        image = preserve_edges(image, config.edge_threshold, workers)
    t_edges = time.perf_counter()

    palette = _select_palette(image, config, workers)
    t_palette = time.perf_counter()

    if config.dithering:
        image = dither(image, palette, config.dithering_strength, progress=progress)
    else:
        image = quantize(image, palette, workers)
    t_reduce = time.perf_counter()

    if debug:
        debug_log(
            key_value_pairs_to_string(
                [
                    ("Source", f"{buffer.width}x{buffer.height}"),
                    ("Output", f"{dst_w}x{dst_h}"),
                    ("Palette", len(palette)),
                ]
            )
        )
        debug_log(
            f"stages  resize={format_seconds_compact(t_resize - t0)}  "
            f"edges={format_seconds_compact(t_edges - t_resize)}  "
            f"palette={format_seconds_compact(t_palette - t_edges)}  "
            f"reduce={format_seconds_compact(t_reduce - t_palette)}"
        )

    return ConversionResult(image, palette)


def convert(
    buffer: PixelBuffer, config: PipelineConfig, *, workers: int = 1
) -> PixelBuffer:
    """Convert an image to pixel art; output is (target_width, round(H*tw/W))."""
    return convert_with_palette(buffer, config, workers=workers).image


__all__ = ["ConversionResult", "convert_with_palette", "convert"]
