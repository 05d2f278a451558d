"""In-memory fan-out of decoded ticks to async consumers."""

from __future__ import annotations

import asyncio
from typing import Generic, TypeVar

T = TypeVar("T")


class EventBus(Generic[T]):
    """Fan-out publisher that feeds each item to all subscriber queues.

    Bounded queues never block the publisher: when a subscriber falls
    behind, its oldest pending item is discarded to make room.
    """

    def __init__(self) -> None:
        self._subscribers: set[asyncio.Queue[T]] = set()
        self.dropped = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish_nowait(self, item: T) -> None:
        """Broadcast ``item`` to every active subscriber queue."""

        for queue in tuple(self._subscribers):
            if queue.full():
                queue.get_nowait()
                queue.task_done()
                self.dropped += 1
            queue.put_nowait(item)

    async def publish(self, item: T) -> None:
        self.publish_nowait(item)

    def subscribe(self, maxsize: int = 0) -> asyncio.Queue[T]:
        """Create and register a new subscriber queue."""

        queue: asyncio.Queue[T] = asyncio.Queue(maxsize=maxsize)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[T]) -> None:
        self._subscribers.discard(queue)

    async def close(self) -> None:
        """Remove all subscribers and drain any pending items."""

        queues = tuple(self._subscribers)
        self._subscribers.clear()

        for queue in queues:
            while not queue.empty():
                queue.get_nowait()
                queue.task_done()


__all__ = ["EventBus"]
