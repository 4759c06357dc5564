#!/usr/bin/env python3
"""
pixelate.py
Turn images into pixel art: resize, smooth non-edges, extract a palette, then
quantize or dither.

Usage:
  python pixelate.py INPUT [--outdir DIR] --width W --colours N [--no-dither] [--strength S]
                     [--no-edges] [--edge-threshold T] [--palette FILE] [--export-palette FILE]
                     [--demo] [--jobs J] [--workers K] [--debug]

Input:
  Any Pillow-readable image or a folder of them. Folder mode skips earlier
  *_pixel outputs. With --demo and no INPUT, a generated demo image is used.

Output:
  PNG. Writes <stem>_pixel.png next to INPUT (or into --outdir).

Palette:
  --palette FILE reads a JSON list of [R,G,B] triples and skips extraction.
  --export-palette FILE writes the palette that was used in the same format.

Notes:
  Settings outside their ranges are rejected, not clamped.
  CPU bound. ThreadPoolExecutor is used where safe; dithering stays sequential.
"""

from __future__ import annotations

import argparse
import io
import os
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import redirect_stdout
from pathlib import Path
from typing import List, Optional, Tuple

from pic_pixeller.config import PipelineConfig
from pic_pixeller.constants import (
    COLOR_LIMIT_DEFAULT,
    DITHER_STRENGTH_DEFAULT,
    EDGE_THRESHOLD_DEFAULT,
    IMAGE_EXTS,
    OUTPUT_SUFFIX,
    TARGET_WIDTH_DEFAULT,
)
from pic_pixeller.core_types import Palette, PixelBuffer, rgb_to_hex
from pic_pixeller.errors import PixellerError
from pic_pixeller.image_io import load_image, make_demo_image, save_png
from pic_pixeller.palette_text import load_palette_file, save_palette_file
from pic_pixeller.pipeline import convert_with_palette
from pic_pixeller.utils import (
    colour_usage_report,
    debug_log,
    enable_line_buffered_stdout,
    error,
    format_total_duration_compact,
    key_value_pairs_to_string,
    log,
    print_banner,
    print_config_line,
    warn,
)

# CLI args & small helpers


def _default_workers() -> int:
    """Leave a few cores free for the system; returns a sensible worker count."""
    n = os.cpu_count() or 4
    reserve = 1 if n <= 6 else 2 if n <= 12 else 3 if n <= 18 else 4
    return max(1, n - reserve)


def parse_cli_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse CLI arguments for pixel-art conversion.

    Returns:
      argparse.Namespace with:
        src: optional Path to image or folder
        outdir: optional Path for outputs
        width: output width in pixels
        colours: palette size when extracting
        no_dither / strength: colour reduction mode and error feedback
        no_edges / edge_threshold: edge-preserving smoothing
        palette: optional palette file (overrides --colours)
        export_palette: optional file to write the used palette to
        demo: convert the built-in demo image
        jobs: parallel file workers
        workers: internal threads for heavy steps
        debug: bool for verbose details
    """
    parser = argparse.ArgumentParser(
        prog="pixelate",
        description="Convert image(s) to pixel art with a reduced palette.",
    )
    parser.add_argument(
        "src", type=Path, nargs="?", default=None, help="Input image or folder"
    )
    parser.add_argument(
        "--outdir", type=Path, default=None, help="Output directory (optional)"
    )
    parser.add_argument(
        "--width",
        type=int,
        default=TARGET_WIDTH_DEFAULT,
        help="Output width in pixels (8-256). Height keeps the aspect ratio.",
    )
    parser.add_argument(
        "--colours",
        "--colors",
        dest="colours",
        type=int,
        default=COLOR_LIMIT_DEFAULT,
        help="Palette size to extract (2-64).",
    )
    parser.add_argument(
        "--no-dither", action="store_true", help="Quantize without error diffusion"
    )
    parser.add_argument(
        "--strength",
        type=float,
        default=DITHER_STRENGTH_DEFAULT,
        help="Dithering strength 0-1.",
    )
    parser.add_argument(
        "--no-edges", action="store_true", help="Skip edge-preserving smoothing"
    )
    parser.add_argument(
        "--edge-threshold",
        type=float,
        default=EDGE_THRESHOLD_DEFAULT,
        help="Luma difference (0-255) that marks an edge.",
    )
    parser.add_argument(
        "--palette", type=Path, default=None, help="Palette file of [R,G,B] triples"
    )
    parser.add_argument(
        "--export-palette",
        type=Path,
        default=None,
        help="Write the palette used for the last image to this file",
    )
    parser.add_argument(
        "--demo", action="store_true", help="Convert the built-in demo image"
    )
    parser.add_argument(
        "--jobs", type=int, default=2, help="Files processed in parallel"
    )
    parser.add_argument(
        "--workers", type=int, default=_default_workers(), help="Internal workers"
    )
    parser.add_argument("--debug", action="store_true", help="Verbose details")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> PipelineConfig:
    """Map CLI flags onto a validated PipelineConfig."""
    palette: Optional[Palette] = None
    if args.palette is not None:
        palette = load_palette_file(args.palette)
    return PipelineConfig.create(
        args.width,
        args.colours,
        dithering=not args.no_dither,
        preserve_edges=not args.no_edges,
        edge_threshold=args.edge_threshold,
        dithering_strength=args.strength,
        palette=palette,
    )


def output_path_for(src_path: Path, outdir: Optional[Path]) -> Path:
    name = f"{src_path.stem}{OUTPUT_SUFFIX}.png"
    return (outdir / name) if outdir else src_path.with_name(name)


def _debug_palette(palette: Palette) -> None:
    debug_log(f"palette: {len(palette)} colours")
    for i, item in enumerate(palette):
        debug_log(f"  {i:2d}  {rgb_to_hex(item.rgb)}")


# Per-image processing


def process_buffer(
    name: str,
    source: PixelBuffer,
    out_path: Path,
    config: PipelineConfig,
    *,
    workers: int,
    debug: bool,
) -> Palette:
    """
    Convert one in-memory image end-to-end:
      convert -> save -> report. Returns the palette that was used.
    """
    t_start = time.perf_counter()
    print_banner(name)
    print_config_line("convert", config.describe(), debug=debug)

    result = convert_with_palette(
        source, config, workers=workers, debug=debug, progress=debug
    )
    if debug:
        _debug_palette(result.palette)

    written = save_png(out_path, result.image)

    log(
        f"Wrote {written.name} | size={result.image.width}x{result.image.height} "
        f"| palette_size={len(result.palette)}"
    )
    log("Colours used:")
    for hex_code, count in colour_usage_report(result.image.data):
        log(f"  {hex_code}: {count:,}")
    log(f"Total time {format_total_duration_compact(time.perf_counter() - t_start)}")
    return result.palette


def _process_one(
    path: Path,
    outdir: Optional[Path],
    config: PipelineConfig,
    workers: int,
    debug: bool,
) -> Optional[Palette]:
    """Load and convert a single file. Errors are reported, not raised."""
    try:
        source = load_image(path)
        return process_buffer(
            path.name,
            source,
            output_path_for(path, outdir),
            config,
            workers=workers,
            debug=debug,
        )
    except PixellerError as exc:
        error(f"{path.name}: {exc}")
        return None
    except OSError as exc:
        error(f"{path.name}: cannot read image ({exc})")
        return None


class _ThreadLocalStdout(io.TextIOBase):
    """
    Stand-in for sys.stdout while files run in parallel. Threads that called
    capture() write into their own buffer; everything else goes to the
    original stream.
    """

    def __init__(self, fallback) -> None:
        super().__init__()
        self._fallback = fallback
        self._local = threading.local()

    def _target(self):
        buf = getattr(self._local, "buf", None)
        return self._fallback if buf is None else buf

    def capture(self) -> io.StringIO:
        self._local.buf = io.StringIO()
        return self._local.buf

    def release(self) -> None:
        self._local.buf = None

    def writable(self) -> bool:
        return True

    def write(self, text: str) -> int:
        return self._target().write(text)

    def flush(self) -> None:
        self._target().flush()


def _process_one_captured(
    router: _ThreadLocalStdout,
    path: Path,
    outdir: Optional[Path],
    config: PipelineConfig,
    workers: int,
    debug: bool,
) -> Tuple[str, Optional[Palette]]:
    """
    Process a single file with stdout capture.

    Useful for concurrent execution where output should be printed in order.
    """
    buf = router.capture()
    try:
        palette = _process_one(path, outdir, config, workers, debug)
    finally:
        router.release()
    return buf.getvalue(), palette


def list_images(folder: Path) -> List[Path]:
    """Image files in a folder, name-sorted, skipping earlier outputs."""
    files = [
        p
        for p in folder.iterdir()
        if p.is_file()
        and p.suffix.lower() in IMAGE_EXTS
        and not p.stem.endswith(OUTPUT_SUFFIX)
    ]
    files.sort(key=lambda p: p.name.lower())
    return files


# Entry point


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Handles the demo image, a single file, or a folder. In folder mode
    supports --jobs parallelism while preserving readable output ordering.
    Returns the process exit code.
    """
    enable_line_buffered_stdout()
    args = parse_cli_args(argv)

    try:
        config = build_config(args)
    except PixellerError as exc:
        error(str(exc))
        return 2
    except OSError as exc:
        error(f"cannot read palette file: {exc}")
        return 2

    print_config_line(
        "run",
        [
            ("CPU cores", os.cpu_count() or 1),
            ("Workers", args.workers),
            ("Jobs", args.jobs),
        ],
        debug=False,
    )

    palettes: List[Optional[Palette]] = []

    if args.src is None:
        if not args.demo:
            error("no input given (pass an image, a folder, or --demo)")
            return 2
        outdir = args.outdir or Path.cwd()
        try:
            palettes.append(
                process_buffer(
                    "demo",
                    make_demo_image(),
                    outdir / f"demo{OUTPUT_SUFFIX}.png",
                    config,
                    workers=args.workers,
                    debug=args.debug,
                )
            )
        except PixellerError as exc:
            error(f"demo: {exc}")
            return 2
        except OSError as exc:
            error(f"demo: cannot write output ({exc})")
            return 2
    else:
        src: Path = args.src
        if not src.exists():
            error(f"not found: {src}")
            return 2

        if src.is_dir():
            files = list_images(src)
            if not files:
                warn(f"no images found in {src}")
            if args.debug:
                debug_log(
                    key_value_pairs_to_string(
                        [("Images", len(files)), ("Jobs", args.jobs)]
                    )
                )
            if args.jobs <= 1:
                for p in files:
                    palettes.append(
                        _process_one(p, args.outdir, config, args.workers, args.debug)
                    )
            else:
                router = _ThreadLocalStdout(sys.stdout)
                with redirect_stdout(router), ThreadPoolExecutor(
                    max_workers=args.jobs
                ) as ex:
                    futures = [
                        ex.submit(
                            _process_one_captured,
                            router,
                            p,
                            args.outdir,
                            config,
                            args.workers,
                            args.debug,
                        )
                        for p in files
                    ]
                    results = [f.result() for f in futures]
                print("".join(text for text, _ in results), end="", flush=True)
                palettes.extend(pal for _, pal in results)
        else:
            palettes.append(
                _process_one(src, args.outdir, config, args.workers, args.debug)
            )

    if any(p is None for p in palettes):
        return 2

    if args.export_palette is not None and palettes:
        try:
            written = save_palette_file(args.export_palette, palettes[-1])
        except OSError as exc:
            error(f"cannot write palette file: {exc}")
            return 2
        log(f"Palette written to {written}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
