import os
import sys
from pathlib import Path

from .version import __version__

TILE_SOURCES = {
    "GSI.std": "https://cyberjapandata.gsi.go.jp/xyz/std/{z}/{x}/{y}.png",
    "GSI.pale": "https://cyberjapandata.gsi.go.jp/xyz/pale/{z}/{x}/{y}.png",
    "GSI.seamlessphoto": "https://cyberjapandata.gsi.go.jp/xyz/seamlessphoto/{z}/{x}/{y}.jpg",
    "osm-bright": "https://tile.openstreetmap.jp/styles/osm-bright/{z}/{x}/{y}.png",
    "osm-bright-ja": "https://tile.openstreetmap.jp/styles/osm-bright-ja/{z}/{x}/{y}.png",
    "maptiler-basic-en": "https://tile.openstreetmap.jp/styles/maptiler-basic-en/{z}/{x}/{y}.png",
    "maptiler-basic-ja": "https://tile.openstreetmap.jp/styles/maptiler-basic-ja/{z}/{x}/{y}.png",
    "maptiler-toner-en": "https://tile.openstreetmap.jp/styles/maptiler-toner-en/{z}/{x}/{y}.png",
    "maptiler-toner-ja": "https://tile.openstreetmap.jp/styles/maptiler-toner-ja/{z}/{x}/{y}.png",
}
DEFAULT_TILE_SOURCE = "GSI.seamlessphoto"
DEFAULT_TILE_URL_TEMPLATE = os.environ.get(
    "TILE_STITCHER_TEMPLATE",
    TILE_SOURCES[DEFAULT_TILE_SOURCE],
)
APP_VERSION = os.environ.get("APP_VERSION", __version__)
USER_AGENT = f"tile-stitcher/{APP_VERSION}"

DEFAULT_ZOOM = 15
MIN_ZOOM = 1
MAX_ZOOM = 18
TILE_SIZE = 256
DEFAULT_CONCURRENCY = int(os.environ.get("TILE_STITCHER_CONCURRENCY", "5"))
# above this many requests the user has to confirm the export
CONFIRM_TILE_THRESHOLD = 100
DEFAULT_IMAGE_FORMAT = "png"
REQUEST_TIMEOUT = 30.0
CONNECT_TIMEOUT = 20.0


def _app_root() -> Path:
    """
    Application root:
    - in a frozen bundle, next to the executable;
    - in development, the repository root.
    """
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    try:
        return Path(__file__).resolve().parents[2]
    except IndexError:
        return Path.cwd()


def _resolve_output_dir() -> Path:
    custom = os.environ.get("TILE_STITCHER_OUTPUT_DIR")
    if custom:
        return Path(custom).expanduser()
    return _app_root() / "exports"


DEFAULT_OUTPUT_DIR = _resolve_output_dir()
