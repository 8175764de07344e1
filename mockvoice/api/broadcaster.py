"""
Event fan-out for connected clients.

The session controller reports through a single callback; the broadcaster
is that callback, and copies each event to every subscribed WebSocket.
"""

import asyncio
import logging

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class EventBroadcaster:
    """Publishes session events to per-subscriber queues."""

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: set[asyncio.Queue] = set()
        self.last_event: dict | None = None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers.add(queue)
        logger.debug(f"Subscriber added ({self.subscriber_count} total)")
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)
        logger.debug(f"Subscriber removed ({self.subscriber_count} total)")

    async def publish(self, event: BaseModel) -> None:
        """Serialize an event and queue it for every subscriber."""
        payload = event.model_dump(mode="json")
        self.last_event = payload

        for queue in list(self._subscribers):
            try:
                queue.put_nowait(payload)
            except asyncio.QueueFull:
                logger.warning(f"Subscriber queue full, dropping '{payload.get('type')}' event")
