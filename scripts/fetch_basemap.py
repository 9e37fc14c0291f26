#!/usr/bin/env python3
"""
Fetch and assemble a low-zoom OpenStreetMap base layer into a single PNG.
Zoom level 2 (4x4 tiles) -> 1024x1024 image.
"""
from pathlib import Path

from tile_stitcher.models import TileGrid, TileIndex
from tile_stitcher.services.tiles import run_stitch

OUT_PATH = Path("assets/maps/world-map.png")
TILE_URL = "https://tile.openstreetmap.org/{z}/{x}/{y}.png"
Z = 2  # 4x4 tiles


def world_grid(zoom: int) -> TileGrid:
    side = 2**zoom
    indices = [TileIndex(x=x, y=y) for y in range(side) for x in range(side)]
    return TileGrid(indices=indices, width=side, height=side)


def main() -> None:
    OUT_PATH.parent.mkdir(parents=True, exist_ok=True)

    def report(completed: int, total: int) -> None:
        print(f"fetched {completed}/{total}")

    blob = run_stitch(world_grid(Z), Z, TILE_URL, on_progress=report)
    OUT_PATH.write_bytes(blob.data)
    print(f"saved {OUT_PATH.resolve()}")


if __name__ == "__main__":
    main()
