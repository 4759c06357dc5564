# pic_pixeller/palette_text.py
from __future__ import annotations

"""
Palette validation and the plain-text exchange format.

The text form is a JSON array of [R,G,B] integer triples, one per line:

  [
  [255,0,0],
  [0,255,0]
  ]

Exports:
  validate_palette(colours) -> Palette
  parse_palette_text(text) -> Palette
  format_palette_text(palette) -> str
  load_palette_file(path) -> Palette
  save_palette_file(path, palette) -> Path
"""

import json
import math
from pathlib import Path
from typing import Any, Iterable, List, Union

import numpy as np

from .core_types import Palette, PaletteItem, RGBTuple, round_half_up
from .errors import InvalidPalette

PaletteLike = Union[Palette, Iterable[Any]]


def _channel(value: Any, index: int, channel: str) -> int:
    """Validate one channel value and round it to an int."""
    if isinstance(value, bool) or not isinstance(
        value, (int, float, np.integer, np.floating)
    ):
        raise InvalidPalette(
            f"colour {index}: {channel} must be a number, got {value!r}"
        )
    v = float(value)
    if not math.isfinite(v) or v < 0.0 or v > 255.0:
        raise InvalidPalette(f"colour {index}: {channel}={value!r} outside 0..255")
    return round_half_up(v)


def validate_palette(colours: PaletteLike) -> Palette:
    """
    Check a caller-supplied palette and return it in canonical form.

    Accepts a Palette, PaletteItems, or [R,G,B] sequences. Requires at least
    one colour and every channel numeric within 0..255. Alpha is always 255.
    """
    if isinstance(colours, Palette):
        entries: List[Any] = [p.rgb for p in colours]
    elif isinstance(colours, (str, bytes)):
        raise InvalidPalette("palette must be a sequence of colours, not text")
    else:
        try:
            entries = list(colours)
        except TypeError:
            raise InvalidPalette("palette must be a sequence of colours") from None

    if not entries:
        raise InvalidPalette("palette must contain at least one colour")

    items: List[PaletteItem] = []
    for i, entry in enumerate(entries):
        if isinstance(entry, PaletteItem):
            entry = entry.rgb
        if isinstance(entry, (str, bytes)) or not hasattr(entry, "__len__"):
            raise InvalidPalette(f"colour {i}: expected [R,G,B], got {entry!r}")
        if len(entry) != 3:
            raise InvalidPalette(
                f"colour {i}: expected 3 channels, got {len(entry)}"
            )
        rgb: RGBTuple = (
            _channel(entry[0], i, "R"),
            _channel(entry[1], i, "G"),
            _channel(entry[2], i, "B"),
        )
        items.append(PaletteItem(rgb=rgb))
    return Palette(tuple(items))


def format_palette_text(palette: PaletteLike) -> str:
    """Render a palette as one [R,G,B] triple per line."""
    pal = validate_palette(palette)
    text = json.dumps([list(p.rgb) for p in pal], separators=(",", ":"))
    return (
        text.replace("],[", "],\n[").replace("[[", "[\n[", 1).replace("]]", "]\n]", 1)
    )


def parse_palette_text(text: str) -> Palette:
    """Parse the JSON triple list; any structural or range problem is InvalidPalette."""
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidPalette(f"palette text is not valid JSON: {exc.msg}") from exc
    if not isinstance(parsed, list):
        raise InvalidPalette("palette text must be a JSON array of [R,G,B] triples")
    return validate_palette(parsed)


def load_palette_file(path: Path) -> Palette:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidPalette(f"palette file is not UTF-8 text: {exc.reason}") from exc
    return parse_palette_text(text)


def save_palette_file(path: Path, palette: PaletteLike) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(format_palette_text(palette) + "\n", encoding="utf-8")
    return path


__all__ = [
    "validate_palette",
    "format_palette_text",
    "parse_palette_text",
    "load_palette_file",
    "save_palette_file",
]
