from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .config import (
    DEFAULT_CONCURRENCY,
    DEFAULT_IMAGE_FORMAT,
    DEFAULT_TILE_URL_TEMPLATE,
    DEFAULT_ZOOM,
    MAX_ZOOM,
    MIN_ZOOM,
    TILE_SIZE,
)

_MEDIA_TYPES = {
    "png": "image/png",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
}


class GeoPoint(BaseModel):
    latitude: float
    longitude: float

    model_config = ConfigDict(frozen=True)

    @classmethod
    def parse(cls, text: str) -> "GeoPoint":
        """Build a point from a ``"lat,lon"`` string."""
        parts = [p.strip() for p in text.split(",")]
        if len(parts) != 2:
            raise ValueError(f"expected 'lat,lon', got {text!r}")
        return cls(latitude=float(parts[0]), longitude=float(parts[1]))


class BoundingBox(BaseModel):
    north_east: GeoPoint
    south_west: GeoPoint

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_order(self) -> "BoundingBox":
        if self.north_east.latitude < self.south_west.latitude:
            raise ValueError("north-east latitude is below south-west latitude")
        return self

    @classmethod
    def from_corners(cls, ne: Tuple[float, float], sw: Tuple[float, float]) -> "BoundingBox":
        return cls(
            north_east=GeoPoint(latitude=ne[0], longitude=ne[1]),
            south_west=GeoPoint(latitude=sw[0], longitude=sw[1]),
        )


class TileIndex(BaseModel):
    x: int
    y: int

    model_config = ConfigDict(frozen=True)


class TileGrid(BaseModel):
    # row-major, list order is draw order
    indices: List[TileIndex]
    width: int = Field(ge=1)
    height: int = Field(ge=1)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_size(self) -> "TileGrid":
        if len(self.indices) != self.width * self.height:
            raise ValueError(
                f"grid holds {len(self.indices)} tiles, expected {self.width}x{self.height}"
            )
        return self

    @property
    def total(self) -> int:
        return len(self.indices)

    def cell(self, position: int) -> Tuple[int, int]:
        return position % self.width, position // self.width


class ProgressState(BaseModel):
    total: int = Field(ge=0)
    completed: int = 0

    def advance(self) -> int:
        if self.completed >= self.total:
            raise RuntimeError("progress already complete")
        self.completed += 1
        return self.completed

    @property
    def fraction(self) -> float:
        if self.total == 0:
            return 1.0
        return self.completed / self.total


class ExportEstimate(BaseModel):
    tiles: int
    width_tiles: int
    height_tiles: int
    width_px: int
    height_px: int
    requires_confirmation: bool


class ExportSettings(BaseModel):
    url_template: str = DEFAULT_TILE_URL_TEMPLATE
    zoom: int = DEFAULT_ZOOM
    tile_size: int = Field(default=TILE_SIZE, ge=1)
    concurrency: int = Field(default=DEFAULT_CONCURRENCY, ge=1)
    image_format: str = DEFAULT_IMAGE_FORMAT

    model_config = ConfigDict(extra="ignore")

    @field_validator("zoom")
    @classmethod
    def _check_zoom(cls, value: int) -> int:
        if not MIN_ZOOM <= value <= MAX_ZOOM:
            raise ValueError(f"zoom must be within {MIN_ZOOM}..{MAX_ZOOM}")
        return value

    @field_validator("image_format")
    @classmethod
    def _check_format(cls, value: str) -> str:
        fmt = value.lower()
        if fmt == "jpg":
            fmt = "jpeg"
        if fmt not in _MEDIA_TYPES:
            raise ValueError(f"unsupported image format {value!r}")
        return fmt


@dataclass
class ImageBlob:
    data: bytes
    image_format: str
    width: int
    height: int

    @property
    def media_type(self) -> str:
        return _MEDIA_TYPES.get(self.image_format, "application/octet-stream")

    @property
    def suffix(self) -> str:
        return ".jpg" if self.image_format == "jpeg" else f".{self.image_format}"
