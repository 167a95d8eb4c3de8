"""Broadcast of cache invalidations to UI collaborators."""

import asyncio
from typing import AsyncIterator, Callable

from loguru import logger

from notetree.domain.events import InvalidationEvent

Subscriber = Callable[[InvalidationEvent], None]


class EventBus:
    """Delivers invalidation events to subscribers in subscription order."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback. Returns a function that removes it again."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: InvalidationEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Invalidation subscriber {callback!r} failed: {e}")

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def stream(self) -> AsyncIterator[InvalidationEvent]:
        """Yield every event published while the iterator is alive."""
        queue: asyncio.Queue[InvalidationEvent] = asyncio.Queue()
        unsubscribe = self.subscribe(queue.put_nowait)
        try:
            while True:
                yield await queue.get()
        finally:
            unsubscribe()
