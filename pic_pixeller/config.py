# pic_pixeller/config.py
from __future__ import annotations

"""
Per-conversion settings.

PipelineConfig is an immutable record. validate() rejects anything outside
the documented ranges instead of clamping; front ends that want clamping
must do it before building the config.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Tuple

import numpy as np

from .constants import (
    COLOR_LIMIT_DEFAULT,
    COLOR_LIMIT_MAX,
    COLOR_LIMIT_MIN,
    DITHER_STRENGTH_DEFAULT,
    DITHER_STRENGTH_MAX,
    DITHER_STRENGTH_MIN,
    EDGE_THRESHOLD_DEFAULT,
    EDGE_THRESHOLD_MAX,
    EDGE_THRESHOLD_MIN,
    TARGET_WIDTH_DEFAULT,
    TARGET_WIDTH_MAX,
    TARGET_WIDTH_MIN,
)
from .core_types import GeneratedPalette, PaletteSource, SuppliedPalette
from .errors import InvalidConfig
from .palette_text import validate_palette


def _is_int(value: Any) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(
        value, bool
    )


def _check_int_range(name: str, value: Any, lo: int, hi: int) -> None:
    if not _is_int(value):
        raise InvalidConfig(f"{name} must be an integer, got {value!r}")
    if not lo <= value <= hi:
        raise InvalidConfig(f"{name} must be in {lo}..{hi}, got {value}")


def _check_float_range(name: str, value: Any, lo: float, hi: float) -> None:
    if not _is_number(value) or not math.isfinite(float(value)):
        raise InvalidConfig(f"{name} must be a finite number, got {value!r}")
    if not lo <= float(value) <= hi:
        raise InvalidConfig(f"{name} must be in {lo:g}..{hi:g}, got {value}")


@dataclass(frozen=True)
class PipelineConfig:
    """
    Settings for one conversion.

    target_width       : output width in pixels, 8..256
    palette_source     : GeneratedPalette(color_limit 2..64) or SuppliedPalette
    dithering          : error diffusion instead of direct quantization
    preserve_edges     : run the edge-preserving smoothing pass
    edge_threshold     : luma difference marking an edge, 0..255
    dithering_strength : error feedback, 0..1
    """

    target_width: int = TARGET_WIDTH_DEFAULT
    palette_source: PaletteSource = field(
        default_factory=lambda: GeneratedPalette(COLOR_LIMIT_DEFAULT)
    )
    dithering: bool = True
    preserve_edges: bool = True
    edge_threshold: float = EDGE_THRESHOLD_DEFAULT
    dithering_strength: float = DITHER_STRENGTH_DEFAULT

    @classmethod
    def create(
        cls,
        target_width: int = TARGET_WIDTH_DEFAULT,
        color_limit: int = COLOR_LIMIT_DEFAULT,
        *,
        dithering: bool = True,
        preserve_edges: bool = True,
        edge_threshold: float = EDGE_THRESHOLD_DEFAULT,
        dithering_strength: float = DITHER_STRENGTH_DEFAULT,
        palette: Optional[Iterable[Any]] = None,
    ) -> "PipelineConfig":
        """
        Build from flat settings. A non-None palette is validated and
        overrides color_limit.
        """
        source: PaletteSource
        if palette is None:
            source = GeneratedPalette(color_limit)
        else:
            source = SuppliedPalette(validate_palette(palette))
        config = cls(
            target_width=target_width,
            palette_source=source,
            dithering=dithering,
            preserve_edges=preserve_edges,
            edge_threshold=edge_threshold,
            dithering_strength=dithering_strength,
        )
        config.validate()
        return config

    @property
    def color_limit(self) -> Optional[int]:
        """Requested palette size, or None when a palette is supplied."""
        if isinstance(self.palette_source, GeneratedPalette):
            return self.palette_source.color_limit
        return None

    def validate(self) -> "PipelineConfig":
        """Raise InvalidConfig / InvalidPalette for out-of-range settings."""
        _check_int_range(
            "target width", self.target_width, TARGET_WIDTH_MIN, TARGET_WIDTH_MAX
        )
        source = self.palette_source
        if isinstance(source, GeneratedPalette):
            _check_int_range(
                "colour limit", source.color_limit, COLOR_LIMIT_MIN, COLOR_LIMIT_MAX
            )
        elif isinstance(source, SuppliedPalette):
            validate_palette(source.palette)
        else:
            raise InvalidConfig(f"unknown palette source {source!r}")
        if not isinstance(self.dithering, bool):
            raise InvalidConfig(f"dithering must be a bool, got {self.dithering!r}")
        if not isinstance(self.preserve_edges, bool):
            raise InvalidConfig(
                f"preserve_edges must be a bool, got {self.preserve_edges!r}"
            )
        _check_float_range(
            "edge threshold",
            self.edge_threshold,
            EDGE_THRESHOLD_MIN,
            EDGE_THRESHOLD_MAX,
        )
        _check_float_range(
            "dithering strength",
            self.dithering_strength,
            DITHER_STRENGTH_MIN,
            DITHER_STRENGTH_MAX,
        )
        return self

    def describe(self) -> Tuple[Tuple[str, Any], ...]:
        """(name, value) pairs for print_config_line."""
        colours: Any = (
            self.color_limit if self.color_limit is not None else "supplied"
        )
        return (
            ("Width", self.target_width),
            ("Colours", colours),
            ("Dither", self.dithering),
            ("Strength", float(self.dithering_strength)),
            ("Edges", self.preserve_edges),
            ("Threshold", float(self.edge_threshold)),
        )


__all__ = ["PipelineConfig"]
