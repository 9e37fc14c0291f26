import logging
from pathlib import Path
from typing import Optional

import httpx

from ..models import BoundingBox, ExportSettings, ImageBlob
from ..utils import batch_count, make_filename
from .coords import bounding_box_to_grid
from .tiles import ProgressCallback, TileStitchRun

LOGGER = logging.getLogger("tile_stitcher.export")


async def export_region(
    bbox: BoundingBox,
    settings: ExportSettings,
    on_progress: Optional[ProgressCallback] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> ImageBlob:
    grid = bounding_box_to_grid(bbox, settings.zoom)
    LOGGER.info(
        "Exporting %d tiles (%dx%d) at zoom %d in %d batches",
        grid.total,
        grid.width,
        grid.height,
        settings.zoom,
        batch_count(grid.total, settings.concurrency),
    )
    LOGGER.debug("Tile template: %s", settings.url_template)
    run = TileStitchRun(
        grid,
        settings.zoom,
        settings.url_template,
        tile_size=settings.tile_size,
        concurrency=settings.concurrency,
        on_progress=on_progress,
        client=client,
        image_format=settings.image_format,
    )
    try:
        blob = await run.run()
    except Exception:
        LOGGER.error("Export failed in state %s", run.state.value)
        raise
    LOGGER.info("Stitched %dx%d px image (%d bytes)", blob.width, blob.height, len(blob.data))
    return blob


def save_blob(blob: ImageBlob, bbox: BoundingBox, zoom: int, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    corner = bbox.south_west
    path = make_filename(zoom, corner.latitude, corner.longitude, output_dir, suffix=blob.suffix)
    path.write_bytes(blob.data)
    LOGGER.info("Saved %s", path)
    return path
