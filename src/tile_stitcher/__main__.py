"""Command-line interface for tile-stitcher."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError
from tqdm.auto import tqdm

from .config import (
    CONFIRM_TILE_THRESHOLD,
    DEFAULT_CONCURRENCY,
    DEFAULT_IMAGE_FORMAT,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_TILE_URL_TEMPLATE,
    DEFAULT_ZOOM,
    TILE_SIZE,
    TILE_SOURCES,
)
from .errors import TileStitchError
from .logging_utils import LogOptions, configure_logging
from .models import BoundingBox, ExportSettings, GeoPoint
from .services.coords import bounding_box_to_grid, estimate_export, grid_bounds
from .services.export import export_region, save_blob
from .version import __version__

LOGGER = logging.getLogger("tile_stitcher.cli")

EXIT_OK = 0
EXIT_ABORTED = 1
EXIT_FAILED = 2


def _point(text: str) -> GeoPoint:
    try:
        return GeoPoint.parse(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _add_region_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--ne", type=_point, required=True, help="north-east corner as LAT,LON")
    parser.add_argument("--sw", type=_point, required=True, help="south-west corner as LAT,LON")
    parser.add_argument("--zoom", type=int, default=DEFAULT_ZOOM)
    parser.add_argument("--tile-size", type=int, default=TILE_SIZE)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tile-stitcher",
        description="Export a map region as one image stitched from slippy-map tiles.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    parser.add_argument("-q", "--quiet", action="store_true")
    parser.add_argument("--log-file", type=Path)
    sub = parser.add_subparsers(dest="command", required=True)

    estimate = sub.add_parser("estimate", help="show how many tiles a region needs")
    _add_region_args(estimate)

    export = sub.add_parser("export", help="download, stitch and save a region")
    _add_region_args(export)
    source = export.add_mutually_exclusive_group()
    source.add_argument("--template", default=DEFAULT_TILE_URL_TEMPLATE, help="tile URL with {z}/{x}/{y}")
    source.add_argument("--source", choices=sorted(TILE_SOURCES), help="named tile source, see `sources`")
    export.add_argument("--concurrency", type=int, default=DEFAULT_CONCURRENCY)
    export.add_argument("--format", dest="image_format", default=DEFAULT_IMAGE_FORMAT)
    export.add_argument("--output", type=Path, default=DEFAULT_OUTPUT_DIR, help="output directory")
    export.add_argument("-y", "--yes", action="store_true", help="skip the large request confirmation")
    export.add_argument("--no-progress", action="store_true")

    sub.add_parser("sources", help="list the named tile sources")
    return parser


def _confirm(tiles: int, width_px: int) -> bool:
    print(
        f"This will make {tiles} requests to the tile server and build a "
        f"{width_px}px-wide image. Requests are batched, but please make sure "
        "not to cause the tile provider trouble.",
        file=sys.stderr,
    )
    try:
        answer = input("Continue? [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def _cmd_estimate(args: argparse.Namespace) -> int:
    bbox = BoundingBox(north_east=args.ne, south_west=args.sw)
    estimate = estimate_export(bbox, args.zoom, args.tile_size)
    extent = grid_bounds(bounding_box_to_grid(bbox, args.zoom), args.zoom)
    print(f"tiles: {estimate.tiles} ({estimate.width_tiles}x{estimate.height_tiles})")
    print(f"image: {estimate.width_px}x{estimate.height_px} px")
    print(
        "extent: "
        f"{extent.north_east.latitude:.6f},{extent.north_east.longitude:.6f} / "
        f"{extent.south_west.latitude:.6f},{extent.south_west.longitude:.6f}"
    )
    if estimate.requires_confirmation:
        print(f"note: more than {CONFIRM_TILE_THRESHOLD} tiles, export will ask for confirmation")
    return EXIT_OK


def _cmd_sources(args: argparse.Namespace) -> int:
    width = max(len(name) for name in TILE_SOURCES)
    for name, template in TILE_SOURCES.items():
        print(f"{name:<{width}}  {template}")
    return EXIT_OK


def _cmd_export(args: argparse.Namespace) -> int:
    settings = ExportSettings(
        url_template=TILE_SOURCES[args.source] if args.source else args.template,
        zoom=args.zoom,
        tile_size=args.tile_size,
        concurrency=args.concurrency,
        image_format=args.image_format,
    )
    bbox = BoundingBox(north_east=args.ne, south_west=args.sw)
    estimate = estimate_export(bbox, settings.zoom, settings.tile_size)
    if estimate.requires_confirmation and not args.yes:
        if not _confirm(estimate.tiles, estimate.width_px):
            LOGGER.warning("Export cancelled")
            return EXIT_ABORTED

    with tqdm(total=estimate.tiles, unit="tile", disable=args.no_progress or args.quiet) as bar:

        def on_progress(completed: int, total: int) -> None:
            bar.update(completed - bar.n)

        blob = asyncio.run(export_region(bbox, settings, on_progress=on_progress))

    path = save_blob(blob, bbox, settings.zoom, args.output)
    print(path)
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(LogOptions(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file))
    handlers = {"estimate": _cmd_estimate, "export": _cmd_export, "sources": _cmd_sources}
    try:
        return handlers[args.command](args)
    except (TileStitchError, ValidationError) as exc:
        LOGGER.error("%s", exc)
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
