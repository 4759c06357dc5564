# pic_pixeller/core_types.py
from __future__ import annotations

"""
Core type aliases, small value objects, and lightweight helpers.
"""

import math
from dataclasses import dataclass, field
from typing import NamedTuple, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from .errors import InvalidDimensions, InvalidPalette

# Basic aliases

RGBTuple = Tuple[int, int, int]
RGBATuple = Tuple[int, int, int, int]

U8Image = NDArray[np.uint8]  # (H, W, 4) RGBA
F64Rows = NDArray[np.float64]  # (..., 3) float RGB or HSL


class HSL(NamedTuple):
    """Hue in [0,1), saturation in [0,1], lightness in [0,1]."""

    h: float
    s: float
    l: float  # noqa: E741


# Pixel buffer


def _check_rgba(arr: np.ndarray) -> np.ndarray:
    if not isinstance(arr, np.ndarray) or arr.dtype != np.uint8:
        raise TypeError("expected a uint8 numpy array")
    if arr.ndim != 3 or arr.shape[-1] != 4:
        raise TypeError(f"expected (H,W,4) RGBA array, got shape {arr.shape}")
    if arr.shape[0] <= 0 or arr.shape[1] <= 0:
        raise InvalidDimensions(
            f"image must be at least 1x1, got {arr.shape[1]}x{arr.shape[0]}"
        )
    return arr


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """
    Row-major RGBA raster. Wraps a read-only uint8 (H, W, 4) array so that
    pipeline stages cannot write into their input.
    """

    data: U8Image

    def __post_init__(self) -> None:
        # Always a private copy; views follow writes to their base.
        arr = np.array(_check_rgba(self.data), dtype=np.uint8, order="C", copy=True)
        arr.setflags(write=False)
        object.__setattr__(self, "data", arr)

    @classmethod
    def wrap(cls, arr: np.ndarray) -> "PixelBuffer":
        """
        Take ownership of a freshly produced array without copying it.
        The caller must not keep a writable reference to it.
        """
        arr = np.ascontiguousarray(_check_rgba(arr), dtype=np.uint8)
        arr.setflags(write=False)
        buf = object.__new__(cls)
        object.__setattr__(buf, "data", arr)
        return buf

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "PixelBuffer":
        """Build from a uint8 (H,W,3) or (H,W,4) array. RGB input gets alpha 255."""
        arr = np.asarray(arr)
        if arr.dtype != np.uint8 or arr.ndim != 3 or arr.shape[-1] not in (3, 4):
            raise TypeError("expected uint8 (H,W,3/4) image")
        if arr.shape[-1] == 3:
            rgba = np.full(arr.shape[:2] + (4,), 255, dtype=np.uint8)
            rgba[..., :3] = arr
            return cls.wrap(rgba)
        return cls(arr)

    @classmethod
    def filled(cls, width: int, height: int, rgba: Sequence[int]) -> "PixelBuffer":
        """Solid-colour buffer. A 3-tuple gets alpha 255."""
        if width <= 0 or height <= 0:
            raise InvalidDimensions(f"image must be at least 1x1, got {width}x{height}")
        px = tuple(int(c) for c in rgba)
        if len(px) == 3:
            px = px + (255,)
        arr = np.empty((height, width, 4), dtype=np.uint8)
        arr[...] = np.array(px, dtype=np.uint8)
        return cls.wrap(arr)

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height), Pillow order."""
        return (self.width, self.height)

    @property
    def rgb(self) -> U8Image:
        return self.data[..., :3]

    @property
    def alpha(self) -> NDArray[np.uint8]:
        return self.data[..., 3]

    def pixel(self, x: int, y: int) -> RGBATuple:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(
                f"pixel ({x}, {y}) outside {self.width}x{self.height} buffer"
            )
        r, g, b, a = self.data[y, x].tolist()
        return (r, g, b, a)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self.data.shape == other.data.shape and bool(
            np.array_equal(self.data, other.data)
        )


# Palette value objects


@dataclass(frozen=True)
class PaletteItem:
    """Finalized palette entry. Alpha is always opaque for built palettes."""

    rgb: RGBTuple
    alpha: int = 255

    @property
    def rgba(self) -> RGBATuple:
        return (self.rgb[0], self.rgb[1], self.rgb[2], self.alpha)


@dataclass(frozen=True)
class CellColour:
    """Mean colour of one hue-bin / saturation-lightness cell, weighted by pixel count."""

    rgb: RGBTuple
    count: int
    hue_bin: int
    cell: int  # s_index * 4 + l_index

    def finalize(self) -> PaletteItem:
        return PaletteItem(rgb=self.rgb)


def _palette_channel(value, index: int) -> int:
    """Numeric, finite, within 0..255; rounded half up to an int."""
    if isinstance(value, bool) or not isinstance(
        value, (int, float, np.integer, np.floating)
    ):
        raise InvalidPalette(f"colour {index}: channel {value!r} is not a number")
    v = float(value)
    if not math.isfinite(v) or not 0.0 <= v <= 255.0:
        raise InvalidPalette(f"colour {index}: channel {value!r} outside 0..255")
    return round_half_up(v)


def _normalise_item(index: int, item: PaletteItem) -> PaletteItem:
    if len(item.rgb) != 3:
        raise InvalidPalette(f"colour {index}: expected 3 channels, got {len(item.rgb)}")
    r, g, b = (_palette_channel(c, index) for c in item.rgb)
    return PaletteItem(rgb=(r, g, b), alpha=_palette_channel(item.alpha, index))


@dataclass(frozen=True)
class Palette:
    """Ordered, read-only set of quantization targets. Order breaks distance ties."""

    items: Tuple[PaletteItem, ...]
    _rgb: NDArray[np.float64] = field(init=False, repr=False, compare=False)
    _rgba: U8Image = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        items = tuple(self.items)
        if not items:
            raise InvalidPalette("palette must contain at least one colour")
        items = tuple(_normalise_item(i, p) for i, p in enumerate(items))
        object.__setattr__(self, "items", items)
        rgb = np.array([p.rgb for p in items], dtype=np.float64).reshape(-1, 3)
        rgba = np.array([p.rgba for p in items], dtype=np.uint8).reshape(-1, 4)
        rgb.setflags(write=False)
        rgba.setflags(write=False)
        object.__setattr__(self, "_rgb", rgb)
        object.__setattr__(self, "_rgba", rgba)

    @classmethod
    def from_rgb(cls, colours: Sequence[Sequence[int]]) -> "Palette":
        """Palette from [R,G,B] rows; fractional channels round half up."""
        return cls(tuple(PaletteItem(rgb=tuple(c)) for c in colours))

    @property
    def rgb_matrix(self) -> NDArray[np.float64]:
        """float64 [P,3] palette RGB rows."""
        return self._rgb

    @property
    def rgba_matrix(self) -> U8Image:
        """uint8 [P,4] palette RGBA rows."""
        return self._rgba

    def colours(self) -> list[RGBTuple]:
        return [p.rgb for p in self.items]

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def __getitem__(self, idx: int) -> PaletteItem:
        return self.items[idx]


# Palette source variant


@dataclass(frozen=True)
class GeneratedPalette:
    """Build the palette from the image with at most color_limit entries."""

    color_limit: int


@dataclass(frozen=True)
class SuppliedPalette:
    """Use a caller-provided palette as is."""

    palette: Palette


PaletteSource = Union[GeneratedPalette, SuppliedPalette]


# Small helpers


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (not banker's rounding)."""
    return int(np.floor(value + 0.5))


def to_u8_channels(values: np.ndarray) -> U8Image:
    """Round half up and clamp float channels to uint8."""
    return np.clip(np.floor(values + 0.5), 0, 255).astype(np.uint8)


def rgb_to_hex(rgb: RGBTuple) -> str:
    """RGB tuple to lowercase hex string '#rrggbb'."""
    return f"#{rgb[0]:02x}{rgb[1]:02x}{rgb[2]:02x}"


__all__ = [
    # aliases / types
    "RGBTuple",
    "RGBATuple",
    "U8Image",
    "F64Rows",
    "HSL",
    # value objects
    "PixelBuffer",
    "PaletteItem",
    "CellColour",
    "Palette",
    "GeneratedPalette",
    "SuppliedPalette",
    "PaletteSource",
    # helpers
    "round_half_up",
    "to_u8_channels",
    "rgb_to_hex",
]
