# ABOUTME: Import progress events and the bounded channel that carries them to a consumer.
# ABOUTME: Events serialize to NDJSON lines; the pipeline itself never knows about the transport.

import asyncio
import json
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import Any

DEFAULT_CHANNEL_SIZE = 100


@dataclass(frozen=True)
class ProgressEvent:
    """One record finished processing. ``current`` counts completed records."""

    current: int
    total: int
    current_book: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "progress",
            "current": self.current,
            "total": self.total,
            "currentBook": self.current_book,
        }


@dataclass(frozen=True)
class CompleteEvent:
    result: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"type": "complete", "result": self.result}


@dataclass(frozen=True)
class ErrorEvent:
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "error", "error": self.error}


ImportEvent = ProgressEvent | CompleteEvent | ErrorEvent
ProgressCallback = Callable[[ProgressEvent], Awaitable[None]]


def encode_event(event: ImportEvent) -> str:
    """One NDJSON line (newline-terminated) for an event."""
    return json.dumps(event.to_dict(), ensure_ascii=False) + "\n"


class ProgressChannel:
    """Bounded queue of import events.

    The producer awaits ``put`` (blocking when the consumer falls behind) and
    calls ``close`` once; the consumer iterates with ``async for`` until the
    channel is closed and drained.
    """

    _CLOSED = object()

    def __init__(self, maxsize: int = DEFAULT_CHANNEL_SIZE) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    async def put(self, event: ImportEvent) -> None:
        if self._closed:
            raise RuntimeError("Progress channel is closed")
        await self._queue.put(event)

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            await self._queue.put(self._CLOSED)

    def discard_pending(self) -> int:
        """Drop queued events a consumer will never read. Returns how many were dropped."""
        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            dropped += 1
        return dropped

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aiter__(self) -> AsyncIterator[ImportEvent]:
        while True:
            item = await self._queue.get()
            if item is self._CLOSED:
                return
            yield item
