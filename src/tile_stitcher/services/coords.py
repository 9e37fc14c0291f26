"""
Web Mercator helpers: geographic coordinates <-> slippy-map tile indices.
"""
import math
from typing import List, Tuple

from ..config import CONFIRM_TILE_THRESHOLD, TILE_SIZE
from ..errors import ProjectionDomainError
from ..models import BoundingBox, ExportEstimate, GeoPoint, TileGrid, TileIndex

EARTH_RADIUS = 6378137.0
# half of the equator length in metres, as used by EPSG:3857 tooling
MERCATOR_HALF_EXTENT = 20037508.34
ORIGIN_X = -math.pi * EARTH_RADIUS
ORIGIN_Y = math.pi * EARTH_RADIUS


def _check_point(lat: float, lon: float) -> None:
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise ProjectionDomainError(lat, lon, "non-finite coordinate")
    if abs(lat) >= 90.0:
        raise ProjectionDomainError(lat, lon, "latitude must be strictly between -90 and 90")
    if abs(lon) > 180.0:
        raise ProjectionDomainError(lat, lon, "longitude must be within -180..180")


def tile_unit(zoom: int) -> float:
    """Plane metres covered by one tile edge at ``zoom``."""
    return 2 * math.pi * EARTH_RADIUS / 2**zoom


def project_to_plane(lat: float, lon: float) -> Tuple[float, float]:
    _check_point(lat, lon)
    x = lon * MERCATOR_HALF_EXTENT / 180.0
    y = math.log(math.tan((90.0 + lat) * math.pi / 360.0)) / (math.pi / 180.0)
    y = y * MERCATOR_HALF_EXTENT / 180.0
    return x, y


def lat_lng_to_tile(lat: float, lon: float, zoom: int) -> TileIndex:
    if zoom < 0:
        raise ProjectionDomainError(lat, lon, f"negative zoom {zoom}")
    x_m, y_m = project_to_plane(lat, lon)
    unit = tile_unit(zoom)
    x_tile = math.floor((x_m - ORIGIN_X) / unit)
    y_tile = math.floor((ORIGIN_Y - y_m) / unit)
    return TileIndex(x=x_tile, y=y_tile)


def tile_to_lat_lng(x: int, y: int, zoom: int) -> GeoPoint:
    """North-west corner of tile ``(x, y)``; inverse of :func:`lat_lng_to_tile`."""
    unit = tile_unit(zoom)
    x_m = x * unit + ORIGIN_X
    y_m = ORIGIN_Y - y * unit
    lon = x_m * 180.0 / MERCATOR_HALF_EXTENT
    y_deg = y_m * 180.0 / MERCATOR_HALF_EXTENT
    lat = math.atan(math.exp(y_deg * math.pi / 180.0)) * 360.0 / math.pi - 90.0
    return GeoPoint(latitude=lat, longitude=lon)


def bounding_box_to_grid(bbox: BoundingBox, zoom: int) -> TileGrid:
    ne = bbox.north_east
    sw = bbox.south_west
    ne_tile = lat_lng_to_tile(ne.latitude, ne.longitude, zoom)
    sw_tile = lat_lng_to_tile(sw.latitude, sw.longitude, zoom)

    x_min, x_max = min(ne_tile.x, sw_tile.x), max(ne_tile.x, sw_tile.x)
    y_min, y_max = min(ne_tile.y, sw_tile.y), max(ne_tile.y, sw_tile.y)

    indices: List[TileIndex] = []
    for y in range(y_min, y_max + 1):
        for x in range(x_min, x_max + 1):
            indices.append(TileIndex(x=x, y=y))

    return TileGrid(
        indices=indices,
        width=abs(ne_tile.x - sw_tile.x) + 1,
        height=abs(ne_tile.y - sw_tile.y) + 1,
    )


def grid_bounds(grid: TileGrid, zoom: int) -> BoundingBox:
    """Geographic extent covered by the stitched image of ``grid``."""
    first = grid.indices[0]
    last = grid.indices[-1]
    north_west = tile_to_lat_lng(first.x, first.y, zoom)
    south_east = tile_to_lat_lng(last.x + 1, last.y + 1, zoom)
    return BoundingBox(
        north_east=GeoPoint(latitude=north_west.latitude, longitude=south_east.longitude),
        south_west=GeoPoint(latitude=south_east.latitude, longitude=north_west.longitude),
    )


def estimate_export(
    bbox: BoundingBox,
    zoom: int,
    tile_size: int = TILE_SIZE,
    threshold: int = CONFIRM_TILE_THRESHOLD,
) -> ExportEstimate:
    grid = bounding_box_to_grid(bbox, zoom)
    return ExportEstimate(
        tiles=grid.total,
        width_tiles=grid.width,
        height_tiles=grid.height,
        width_px=grid.width * tile_size,
        height_px=grid.height * tile_size,
        requires_confirmation=grid.total > threshold,
    )
