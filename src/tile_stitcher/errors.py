from __future__ import annotations


class TileStitchError(Exception):
    """Base class for every failure of a tile export run."""


class ProjectionDomainError(TileStitchError, ValueError):
    def __init__(self, latitude: float, longitude: float, reason: str | None = None) -> None:
        self.latitude = latitude
        self.longitude = longitude
        message = reason or "coordinate outside Web Mercator domain"
        super().__init__(f"{message}: lat={latitude}, lon={longitude}")


class SurfaceUnavailable(TileStitchError):
    """The off-screen pixel buffer could not be allocated."""


class SurfaceContextUnavailable(TileStitchError):
    """The surface exists but cannot be drawn on in the requested mode."""


class TileFetchFailed(TileStitchError):
    def __init__(self, x: int, y: int, zoom: int, cause: BaseException) -> None:
        self.x = x
        self.y = y
        self.zoom = zoom
        self.cause = cause
        super().__init__(f"tile z{zoom}/{x}/{y} failed: {cause}")
