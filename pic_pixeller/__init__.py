# pic_pixeller/__init__.py
"""
pic_pixeller package.

Purpose:
  Turn any raster image into pixel art: nearest-neighbour resize, optional
  edge-preserving smoothing, hue-binned palette extraction, then direct
  quantization or Floyd-Steinberg dithering. See pixelate.py for the CLI.

Public API:
  convert              : image + PipelineConfig -> pixel-art image
  convert_with_palette : same, also returns the palette used
  PipelineConfig       : per-run settings (validated, immutable)
  PixelBuffer          : RGBA raster value object
  Palette              : ordered palette of opaque colours
  build_palette        : hue-binned palette extraction
  quantize / dither    : colour reduction against a palette
  resize_nearest       : aspect-preserving nearest-neighbour resize
  preserve_edges       : edge-preserving smoothing
  colour_convert       : rgb_to_hsl, luma, colour_distance
  palette_text         : [R,G,B] palette text exchange format
  image_io             : Pillow load/save and the demo image

Quick start:
  from pic_pixeller import PipelineConfig, convert
  from pic_pixeller.image_io import load_image, save_png
  out = convert(load_image("in.png"), PipelineConfig.create(64, 16))
"""

__version__ = "0.1.0"

# Re-export namespaces for convenience.
from . import colour_convert
from . import core_types
from . import image_io
from . import palette_text
from . import utils

from .config import PipelineConfig
from .core_types import (
    GeneratedPalette,
    Palette,
    PaletteItem,
    PixelBuffer,
    SuppliedPalette,
)
from .edges import preserve_edges
from .errors import InvalidConfig, InvalidDimensions, InvalidPalette, PixellerError
from .palette_build import build_palette
from .pipeline import ConversionResult, convert, convert_with_palette
from .reduce import dither, quantize
from .resample import resize_nearest

__all__ = [
    "__version__",
    "colour_convert",
    "core_types",
    "image_io",
    "palette_text",
    "utils",
    "PipelineConfig",
    "GeneratedPalette",
    "SuppliedPalette",
    "Palette",
    "PaletteItem",
    "PixelBuffer",
    "PixellerError",
    "InvalidConfig",
    "InvalidDimensions",
    "InvalidPalette",
    "ConversionResult",
    "convert",
    "convert_with_palette",
    "build_palette",
    "quantize",
    "dither",
    "resize_nearest",
    "preserve_edges",
]
