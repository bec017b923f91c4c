"""
In-process work queue.

asyncio.Queue backend for single-process deployments and tests. Released
messages go back to the end of the queue.
"""

import asyncio
import logging
from typing import List, Optional
from uuid import uuid4

from .base import WorkQueue
from .envelope import QueueEnvelope, QueueMessage

logger = logging.getLogger(__name__)


class LocalWorkQueue(WorkQueue):
    """WorkQueue backed by asyncio.Queue."""

    name = "local"

    def __init__(self, wait_seconds: float = 1.0):
        self.wait_seconds = wait_seconds
        self._queue: asyncio.Queue = asyncio.Queue()

    async def send(
        self,
        envelope: QueueEnvelope,
        group_id: Optional[str] = None,
        deduplication_id: Optional[str] = None,
    ) -> str:
        message_id = str(uuid4())
        await self._queue.put(QueueMessage(message_id=message_id, body=envelope.to_body()))
        return message_id

    async def receive(self, max_messages: int = 5) -> List[QueueMessage]:
        try:
            first = await asyncio.wait_for(self._queue.get(), timeout=self.wait_seconds)
        except asyncio.TimeoutError:
            return []

        messages = [first]
        while len(messages) < max_messages and not self._queue.empty():
            messages.append(self._queue.get_nowait())
        return messages

    async def ack(self, message: QueueMessage) -> None:
        pass

    async def release(self, message: QueueMessage) -> None:
        logger.info(f"Requeueing message {message.message_id}")
        await self._queue.put(message)

    def qsize(self) -> int:
        return self._queue.qsize()
