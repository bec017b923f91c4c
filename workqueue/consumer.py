"""
Queue consumer.

Polls a WorkQueue and runs each envelope through the orchestrator under a
processing timeout.

Ack policy:
- processed (successfully or not)  -> ack; a failed turn is not retried
- malformed envelope                -> ack; never retried
- processing timeout                -> release; redelivered later

Duplicate deliveries are possible; each one is processed as a new turn.
"""

import asyncio
import logging
from typing import Optional

from conversation.orchestrator import ConversationOrchestrator
from eva.errors import ValidationError

from .base import WorkQueue
from .envelope import QueueEnvelope, QueueMessage

logger = logging.getLogger(__name__)

DEFAULT_PROCESSING_TIMEOUT_SECONDS = 150.0


class QueueConsumer:
    """Poll loop for one queue."""

    def __init__(
        self,
        queue: WorkQueue,
        orchestrator: ConversationOrchestrator,
        timeout_seconds: float = DEFAULT_PROCESSING_TIMEOUT_SECONDS,
        batch_size: int = 5,
        idle_sleep_seconds: float = 1.0,
    ):
        self.queue = queue
        self.orchestrator = orchestrator
        self.timeout_seconds = timeout_seconds
        self.batch_size = batch_size
        self.idle_sleep_seconds = idle_sleep_seconds
        self._task: Optional[asyncio.Task] = None

    async def process_message(self, message: QueueMessage) -> bool:
        """
        Process one queue message.

        Returns:
            True if the message was acked, False if released for redelivery
        """
        logger.info(f"[process_message] Processing messageID: {message.message_id}")
        try:
            envelope = QueueEnvelope.from_body(message.body)
        except ValidationError as e:
            logger.error(f"[process_message] Dropping malformed message {message.message_id}: {e}")
            await self.queue.ack(message)
            return True

        try:
            await asyncio.wait_for(
                self.orchestrator.process_event(
                    envelope.event,
                    envelope.bot_config,
                    message_id=message.message_id,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"[process_message] Timeout error: message {message.message_id} exceeded {self.timeout_seconds}s"
            )
            await self.queue.release(message)
            return False
        except Exception as e:
            logger.error(f"[process_message] Error processing message {message.message_id}: {e}", exc_info=True)

        await self.queue.ack(message)
        return True

    async def poll_once(self) -> int:
        """Receive one batch and process it concurrently. Returns the batch size."""
        messages = await self.queue.receive(self.batch_size)
        if messages:
            await asyncio.gather(*(self.process_message(m) for m in messages))
        return len(messages)

    async def _run(self) -> None:
        logger.info(f"Consumer for {self.queue.name} queue started")
        while True:
            try:
                received = await self.poll_once()
            except Exception as e:
                logger.error(f"Consumer error: {e}", exc_info=True)
                received = 0
            if not received:
                await asyncio.sleep(self.idle_sleep_seconds)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f"Consumer for {self.queue.name} queue stopped")
