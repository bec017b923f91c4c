"""
Abstract work queue.

At-least-once semantics: a message that is not acked is delivered again.
Ordering across conversations is not guaranteed.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from .envelope import QueueEnvelope, QueueMessage


class WorkQueue(ABC):
    """Queue boundary used by the webhook (producer) and the consumer."""

    name: str = "queue"

    @abstractmethod
    async def send(
        self,
        envelope: QueueEnvelope,
        group_id: Optional[str] = None,
        deduplication_id: Optional[str] = None,
    ) -> str:
        """Enqueue an envelope. Returns the backend message ID."""
        raise NotImplementedError

    @abstractmethod
    async def receive(self, max_messages: int = 5) -> List[QueueMessage]:
        """Receive up to `max_messages`. May return an empty list."""
        raise NotImplementedError

    @abstractmethod
    async def ack(self, message: QueueMessage) -> None:
        """Mark a message done; it will not be delivered again."""
        raise NotImplementedError

    @abstractmethod
    async def release(self, message: QueueMessage) -> None:
        """Give a message back for redelivery."""
        raise NotImplementedError
