import asyncio
import contextlib
from enum import Enum
from functools import partial
from io import BytesIO
from typing import Callable, Optional, Tuple

import httpx
from PIL import Image

from ..config import (
    CONNECT_TIMEOUT,
    DEFAULT_CONCURRENCY,
    DEFAULT_IMAGE_FORMAT,
    REQUEST_TIMEOUT,
    TILE_SIZE,
    USER_AGENT,
)
from ..errors import SurfaceContextUnavailable, SurfaceUnavailable, TileFetchFailed
from ..models import ImageBlob, ProgressState, TileGrid, TileIndex
from ..utils import batched_gather

ProgressCallback = Callable[[int, int], None]

# InvalidURL and StreamError do not derive from HTTPError
_TILE_ERRORS = (
    httpx.HTTPError,
    httpx.InvalidURL,
    httpx.StreamError,
    OSError,
    ValueError,
    Image.DecompressionBombError,
)


class RunState(str, Enum):
    IDLE = "idle"
    ALLOCATING = "allocating"
    FETCHING = "fetching"
    ENCODING = "encoding"
    DONE = "done"
    FAILED = "failed"


def build_http_client(concurrency: int) -> httpx.AsyncClient:
    timeout = httpx.Timeout(REQUEST_TIMEOUT, connect=CONNECT_TIMEOUT)
    limits = httpx.Limits(
        max_connections=concurrency,
        max_keepalive_connections=concurrency,
    )
    return httpx.AsyncClient(
        headers={"User-Agent": USER_AGENT},
        timeout=timeout,
        limits=limits,
        follow_redirects=True,
    )


def build_tile_url(template: str, index: TileIndex, zoom: int) -> str:
    # first occurrence of each placeholder only
    return (
        template.replace("{x}", str(index.x), 1)
        .replace("{y}", str(index.y), 1)
        .replace("{z}", str(zoom), 1)
    )


def decode_tile(content: bytes, mode: str) -> Image.Image:
    with Image.open(BytesIO(content)) as img:
        img.load()
        return img.convert(mode)


class RenderSurface:
    """Off-screen canvas a single run composites its tiles into."""

    SUPPORTED_MODES = ("RGBA", "RGB", "LA", "L")

    def __init__(self, image: Image.Image) -> None:
        self._image: Optional[Image.Image] = image

    @classmethod
    def allocate(cls, width: int, height: int, mode: str = "RGBA") -> "RenderSurface":
        if mode not in cls.SUPPORTED_MODES:
            raise SurfaceContextUnavailable(f"cannot draw tiles in image mode {mode!r}")
        try:
            image = Image.new(mode, (width, height))
        except (MemoryError, ValueError, OverflowError) as exc:
            raise SurfaceUnavailable(
                f"cannot allocate a {width}x{height} surface: {exc}"
            ) from exc
        return cls(image)

    @property
    def image(self) -> Image.Image:
        if self._image is None:
            raise SurfaceUnavailable("surface already released")
        return self._image

    @property
    def mode(self) -> str:
        return self.image.mode

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size

    def draw(self, tile: Image.Image, offset: Tuple[int, int]) -> None:
        self.image.paste(tile, offset)

    def encode(self, image_format: str = DEFAULT_IMAGE_FORMAT) -> bytes:
        image = self.image
        if image_format == "jpeg" and image.mode in ("RGBA", "LA"):
            image = image.convert(image.mode[:-1])
        buf = BytesIO()
        image.save(buf, format=image_format.upper())
        return buf.getvalue()

    def release(self) -> None:
        if self._image is not None:
            self._image.close()
            self._image = None


class TileStitchRun:
    """
    One export run: fetch every tile of ``grid`` in batches of
    ``concurrency``, paste each at its row-major cell and encode the result.

    A run is single use; create a new instance for every export.
    """

    def __init__(
        self,
        grid: TileGrid,
        zoom: int,
        url_template: str,
        tile_size: int = TILE_SIZE,
        concurrency: int = DEFAULT_CONCURRENCY,
        on_progress: Optional[ProgressCallback] = None,
        client: Optional[httpx.AsyncClient] = None,
        image_format: str = DEFAULT_IMAGE_FORMAT,
        mode: str = "RGBA",
    ) -> None:
        self.grid = grid
        self.zoom = zoom
        self.url_template = url_template
        self.tile_size = tile_size
        if concurrency < 1:
            raise ValueError("concurrency must be greater than 0")
        self.concurrency = concurrency
        self.on_progress = on_progress
        self.image_format = image_format
        self.mode = mode
        self.progress = ProgressState(total=grid.total)
        self.state = RunState.IDLE
        self.batch: Optional[int] = None
        self._client = client

    def offset_for(self, position: int) -> Tuple[int, int]:
        col, row = self.grid.cell(position)
        return col * self.tile_size, row * self.tile_size

    def _client_scope(self):
        if self._client is not None:
            return contextlib.nullcontext(self._client)
        return build_http_client(self.concurrency)

    def _enter_batch(self, number: int) -> None:
        self.batch = number

    async def _fetch(self, client: httpx.AsyncClient, index: TileIndex) -> Image.Image:
        url = build_tile_url(self.url_template, index, self.zoom)
        try:
            resp = await client.get(url)
            resp.raise_for_status()
            content = await resp.aread()
            return await asyncio.to_thread(decode_tile, content, self.mode)
        except _TILE_ERRORS as exc:
            raise TileFetchFailed(index.x, index.y, self.zoom, exc) from exc

    async def _fetch_and_draw(
        self,
        client: httpx.AsyncClient,
        surface: RenderSurface,
        position: int,
        index: TileIndex,
    ) -> None:
        tile = await self._fetch(client, index)
        try:
            surface.draw(tile, self.offset_for(position))
        finally:
            tile.close()
        completed = self.progress.advance()
        if self.on_progress is not None:
            self.on_progress(completed, self.progress.total)

    async def run(self) -> ImageBlob:
        if self.state is not RunState.IDLE:
            raise RuntimeError("TileStitchRun instances cannot be reused")
        try:
            self.state = RunState.ALLOCATING
            surface = RenderSurface.allocate(
                self.tile_size * self.grid.width,
                self.tile_size * self.grid.height,
                self.mode,
            )
            try:
                self.state = RunState.FETCHING
                async with self._client_scope() as client:
                    jobs = [
                        partial(self._fetch_and_draw, client, surface, position, index)
                        for position, index in enumerate(self.grid.indices)
                    ]
                    await batched_gather(jobs, self.concurrency, on_batch=self._enter_batch)
                self.state = RunState.ENCODING
                width, height = surface.size
                data = surface.encode(self.image_format)
            finally:
                surface.release()
        except BaseException:
            self.state = RunState.FAILED
            raise
        self.state = RunState.DONE
        return ImageBlob(data=data, image_format=self.image_format, width=width, height=height)


async def stitch_tiles(
    grid: TileGrid,
    zoom: int,
    url_template: str,
    tile_size: int = TILE_SIZE,
    concurrency: int = DEFAULT_CONCURRENCY,
    on_progress: Optional[ProgressCallback] = None,
    client: Optional[httpx.AsyncClient] = None,
    image_format: str = DEFAULT_IMAGE_FORMAT,
) -> ImageBlob:
    run = TileStitchRun(
        grid,
        zoom,
        url_template,
        tile_size=tile_size,
        concurrency=concurrency,
        on_progress=on_progress,
        client=client,
        image_format=image_format,
    )
    return await run.run()


def run_stitch(*args, **kwargs) -> ImageBlob:
    """Blocking wrapper around :func:`stitch_tiles` with its own event loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(stitch_tiles(*args, **kwargs))
    finally:
        loop.run_until_complete(loop.shutdown_asyncgens())
        loop.run_until_complete(loop.shutdown_default_executor())
        loop.close()
