from __future__ import annotations

import asyncio
from io import BytesIO
from typing import Dict, List, Tuple

import httpx
from PIL import Image

TEMPLATE = "https://tiles.test/{z}/{x}/{y}.png"


def tile_color(x: int, y: int) -> Tuple[int, int, int]:
    return (x * 40 % 256, y * 40 % 256, (x + y) * 10 % 256)


def make_tile_png(color: Tuple[int, int, int], size: int = 4) -> bytes:
    buf = BytesIO()
    Image.new("RGB", (size, size), color).save(buf, format="PNG")
    return buf.getvalue()


def parse_tile_path(url: httpx.URL) -> Tuple[int, int, int]:
    z, x, y = url.path.strip("/").rsplit(".", 1)[0].split("/")[-3:]
    return int(z), int(x), int(y)


class FakeTileServer:
    """Serves solid-colour tiles and records when each request starts and ends."""

    def __init__(
        self,
        size: int = 4,
        delays: Dict[Tuple[int, int], float] | None = None,
        failures: Dict[Tuple[int, int], int] | None = None,
        garbage: Tuple[Tuple[int, int], ...] = (),
        broken: Tuple[Tuple[int, int], ...] = (),
    ) -> None:
        self.size = size
        self.delays = delays or {}
        self.failures = failures or {}
        self.garbage = set(garbage)
        self.broken = set(broken)
        self.events: List[Tuple[str, Tuple[int, int]]] = []
        self.requested: List[Tuple[int, int, int]] = []
        self.urls: List[str] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        z, x, y = parse_tile_path(request.url)
        key = (x, y)
        self.requested.append((z, x, y))
        self.urls.append(str(request.url))
        self.events.append(("start", key))
        try:
            await asyncio.sleep(self.delays.get(key, 0.0))
            if key in self.broken:
                raise httpx.ConnectError("connection refused", request=request)
            if key in self.failures:
                return httpx.Response(self.failures[key], content=b"nope")
            if key in self.garbage:
                return httpx.Response(200, content=b"definitely not an image")
            return httpx.Response(200, content=make_tile_png(tile_color(x, y), self.size))
        finally:
            self.events.append(("end", key))

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))
