"""
Progress reporting channel shared by concurrent pipeline tasks.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import NamedTuple

from tqdm import tqdm

logger = logging.getLogger("dubfit")


class ProgressUpdate(NamedTuple):
    completed: int
    total: int
    message: str
    stage: str = "synthesis"

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 100.0
        return 100.0 * self.completed / self.total


_CLOSED = object()


class ProgressChannel:
    """
    Many-producer, single-consumer queue of ProgressUpdate messages.

    Producers call send() from any task on the loop; one consumer drains the
    channel with `async for` until close() is called.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    def send(self, update: ProgressUpdate) -> None:
        if self._closed:
            logger.debug("Dropping progress update on closed channel: %s", update.message)
            return
        self._queue.put_nowait(update)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self) -> ProgressUpdate:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    def drain(self) -> list[ProgressUpdate]:
        """Return all queued updates without waiting."""
        out: list[ProgressUpdate] = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is _CLOSED:
                break
            out.append(item)
        return out


async def consume_progress(
    channel: ProgressChannel,
    handler: Callable[[ProgressUpdate], None],
    on_close: Callable[[], None] | None = None,
) -> None:
    """Feed every update to `handler` until the channel is closed, then call `on_close`."""
    try:
        async for update in channel:
            handler(update)
    finally:
        if on_close is not None:
            on_close()


class TqdmProgress:
    """Render pipeline-stage updates as a percentage bar and log the rest."""

    def __init__(self, desc: str = "Dubbing") -> None:
        self.bar = tqdm(total=100, desc=desc, unit="%")

    def __call__(self, update: ProgressUpdate) -> None:
        if update.stage == "pipeline":
            target = int(update.percent)
            if target > self.bar.n:
                self.bar.update(target - self.bar.n)
            self.bar.set_postfix_str(update.message[:60])
        else:
            logger.info(f"[{update.stage}] {update.completed}/{update.total} {update.message}")

    def close(self) -> None:
        self.bar.close()
