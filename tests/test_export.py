from __future__ import annotations

import asyncio
import logging
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from tile_stitcher.errors import TileFetchFailed
from tile_stitcher.models import BoundingBox, ExportSettings
from tile_stitcher.services.export import export_region, save_blob
from tests.utils import TEMPLATE, FakeTileServer

TSUKUBA = BoundingBox.from_corners(ne=(36.10, 140.12), sw=(36.06, 140.10))


def test_export_region_stitches_whole_grid(caplog) -> None:
    server = FakeTileServer(size=8)
    settings = ExportSettings(url_template=TEMPLATE, zoom=15, tile_size=8)
    progress: list = []

    with caplog.at_level(logging.INFO, logger="tile_stitcher.export"):
        blob = asyncio.run(
            export_region(
                TSUKUBA,
                settings,
                on_progress=lambda done, total: progress.append(done),
                client=server.client(),
            )
        )

    assert (blob.width, blob.height) == (24, 40)
    assert progress == list(range(1, 16))
    assert len(server.requested) == 15
    assert {z for z, _, _ in server.requested} == {15}
    assert "Exporting 15 tiles (3x5) at zoom 15 in 3 batches" in caplog.text


def test_export_region_logs_failure(caplog) -> None:
    server = FakeTileServer(size=8, failures={(29137, 12858): 503})
    settings = ExportSettings(url_template=TEMPLATE, zoom=15, tile_size=8)

    with caplog.at_level(logging.ERROR, logger="tile_stitcher.export"):
        with pytest.raises(TileFetchFailed):
            asyncio.run(export_region(TSUKUBA, settings, client=server.client()))

    assert "Export failed in state failed" in caplog.text


def test_save_blob(tmp_path: Path) -> None:
    server = FakeTileServer(size=8)
    settings = ExportSettings(url_template=TEMPLATE, zoom=15, tile_size=8)
    blob = asyncio.run(export_region(TSUKUBA, settings, client=server.client()))

    path = save_blob(blob, TSUKUBA, 15, tmp_path / "out")

    assert path == tmp_path / "out" / "tiles_z15_36.06000_140.10000.png"
    with Image.open(BytesIO(path.read_bytes())) as image:
        assert image.size == (24, 40)
