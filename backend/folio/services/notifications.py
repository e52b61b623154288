"""Fan-out of completed cascade results to interested listeners."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

logger = logging.getLogger(__name__)


class SnapshotNotifier:
    """Deliver every published result to each subscribed queue."""

    def __init__(self, maxsize: int = 0):
        self._maxsize = maxsize
        self._subscribers: list[asyncio.Queue] = []

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._maxsize)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, result: Any) -> None:
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(result)
            except asyncio.QueueFull:
                logger.warning("Dropping snapshot notification for a full subscriber queue")


__all__ = ["SnapshotNotifier"]
