from __future__ import annotations

import pytest
from pydantic import ValidationError

from tile_stitcher.models import BoundingBox, ExportSettings, GeoPoint, ProgressState, TileGrid, TileIndex


def test_geopoint_parse() -> None:
    assert GeoPoint.parse("36.1, 140.12") == GeoPoint(latitude=36.1, longitude=140.12)
    with pytest.raises(ValueError):
        GeoPoint.parse("36.1")


def test_bounding_box_rejects_inverted_latitudes() -> None:
    with pytest.raises(ValidationError):
        BoundingBox.from_corners(ne=(10.0, 5.0), sw=(20.0, 4.0))


def test_tile_grid_size_invariant() -> None:
    with pytest.raises(ValidationError):
        TileGrid(indices=[TileIndex(x=0, y=0)], width=2, height=1)
    grid = TileGrid(indices=[TileIndex(x=0, y=0), TileIndex(x=1, y=0)], width=2, height=1)
    assert grid.cell(1) == (1, 0)


def test_progress_state_only_moves_forward() -> None:
    state = ProgressState(total=2)
    assert state.advance() == 1
    assert state.advance() == 2
    assert state.fraction == 1.0
    with pytest.raises(RuntimeError):
        state.advance()
    assert state.completed == 2


def test_export_settings_validation() -> None:
    settings = ExportSettings(zoom=12, image_format="JPG")
    assert settings.image_format == "jpeg"
    assert settings.concurrency == 5
    assert settings.tile_size == 256
    with pytest.raises(ValidationError):
        ExportSettings(zoom=19)
    with pytest.raises(ValidationError):
        ExportSettings(zoom=0)
    with pytest.raises(ValidationError):
        ExportSettings(image_format="tiff")
    with pytest.raises(ValidationError):
        ExportSettings(concurrency=0)
