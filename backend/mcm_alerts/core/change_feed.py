"""
In-process change feed for newly created alert events.

Every realtime connection (WebSocket or SSE) registers a listener queue and
receives each published event once. Closing the feed wakes all listeners
with an end-of-stream marker.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional, Set

logger = logging.getLogger(__name__)

END_OF_STREAM = None


class ChangeFeed:
    """
    Fan-out of new events to live realtime connections.
    
    Usage:
        async with feed.listen() as queue:
            event = await queue.get()
    """
    
    def __init__(self, max_queue_size: int = 1000):
        self._listeners: Set[asyncio.Queue] = set()
        self._max_queue_size = max_queue_size
        self._running = False
    
    @property
    def listener_count(self) -> int:
        return len(self._listeners)
    
    @property
    def is_running(self) -> bool:
        return self._running
    
    def start(self):
        self._running = True
        logger.info("Change feed started")
    
    def stop(self):
        """Stop the feed and signal end-of-stream to every listener"""
        self._running = False
        for queue in list(self._listeners):
            self._offer(queue, END_OF_STREAM)
        logger.info(f"Change feed stopped ({len(self._listeners)} listeners notified)")
    
    @asynccontextmanager
    async def listen(self) -> AsyncIterator[asyncio.Queue]:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._listeners.add(queue)
        if not self._running:
            self._offer(queue, END_OF_STREAM)
        logger.debug(f"Change feed listener added (total={len(self._listeners)})")
        try:
            yield queue
        finally:
            self._listeners.discard(queue)
            logger.debug(f"Change feed listener removed (total={len(self._listeners)})")
    
    def publish(self, event: Dict[str, Any]) -> int:
        """Deliver an event to every listener. Returns the number of listeners reached."""
        delivered = 0
        for queue in list(self._listeners):
            if self._offer(queue, event):
                delivered += 1
        return delivered
    
    def _offer(self, queue: asyncio.Queue, item: Optional[Dict[str, Any]]) -> bool:
        try:
            queue.put_nowait(item)
            return True
        except asyncio.QueueFull:
            logger.warning("Change feed listener queue full, dropping event")
            return False
