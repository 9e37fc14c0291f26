import asyncio
import math
from pathlib import Path
from typing import Awaitable, Callable, Iterator, List, Optional, Sequence, TypeVar

T = TypeVar("T")


def make_filename(
    zoom: int,
    latitude: float,
    longitude: float,
    output_dir: Path,
    suffix: str = ".png",
) -> Path:
    filename = f"tiles_z{zoom}_{latitude:.5f}_{longitude:.5f}{suffix}"
    return output_dir / filename


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    if size <= 0:
        raise ValueError("batch size must be greater than 0")
    for start in range(0, len(items), size):
        yield items[start : start + size]


def batch_count(total: int, size: int) -> int:
    if size <= 0:
        raise ValueError("batch size must be greater than 0")
    return math.ceil(total / size)


async def batched_gather(
    jobs: Sequence[Callable[[], Awaitable[T]]],
    batch_size: int,
    on_batch: Optional[Callable[[int], None]] = None,
) -> List[T]:
    """
    Run coroutine factories in sequential batches of ``batch_size``.

    Every job of a batch is started together and the whole batch is awaited
    until each member has settled; only then is the next batch issued. If
    anything in a batch failed, the first failure (by position) is raised and
    no further batches start. ``on_batch`` receives the batch number right
    before the batch is issued.
    """
    results: List[T] = []
    for number, batch in enumerate(chunked(jobs, batch_size)):
        if on_batch is not None:
            on_batch(number)
        settled = await asyncio.gather(*(job() for job in batch), return_exceptions=True)
        for outcome in settled:
            if isinstance(outcome, BaseException):
                raise outcome
        results.extend(settled)
    return results
