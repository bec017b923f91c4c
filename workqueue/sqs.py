"""
Amazon SQS work queue.

boto3 is synchronous; every call runs in the default executor so the event
loop never blocks. FIFO attributes (group and deduplication IDs) are sent
only to `.fifo` queues.

Redelivery relies on the visibility timeout: `release` leaves the message
alone and SQS hands it out again once the timeout lapses.
"""

import asyncio
import functools
import logging
from typing import Dict, List, Optional

import boto3

from infra.bot_config import QueueSettings

from .base import WorkQueue
from .envelope import QueueEnvelope, QueueMessage

logger = logging.getLogger(__name__)

DEFAULT_VISIBILITY_TIMEOUT = 180
DEFAULT_WAIT_TIME_SECONDS = 20


class SQSWorkQueue(WorkQueue):
    """WorkQueue backed by one SQS queue URL."""

    name = "sqs"

    def __init__(
        self,
        settings: QueueSettings,
        client=None,
        wait_time_seconds: int = DEFAULT_WAIT_TIME_SECONDS,
        visibility_timeout: int = DEFAULT_VISIBILITY_TIMEOUT,
    ):
        self.settings = settings
        self.wait_time_seconds = wait_time_seconds
        self.visibility_timeout = visibility_timeout
        self.client = client or boto3.client(
            "sqs",
            region_name=settings.region,
            aws_access_key_id=settings.access_key_id,
            aws_secret_access_key=settings.secret_access_key,
        )

    @property
    def url(self) -> str:
        return self.settings.url

    @property
    def is_fifo(self) -> bool:
        return self.url.endswith(".fifo")

    async def _call(self, method: str, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(getattr(self.client, method), **kwargs))

    async def send(
        self,
        envelope: QueueEnvelope,
        group_id: Optional[str] = None,
        deduplication_id: Optional[str] = None,
    ) -> str:
        params = {"QueueUrl": self.url, "MessageBody": envelope.to_body()}
        if self.is_fifo:
            if group_id:
                params["MessageGroupId"] = group_id
            if deduplication_id:
                params["MessageDeduplicationId"] = deduplication_id

        response = await self._call("send_message", **params)
        message_id = response.get("MessageId", "")
        logger.info(
            f"Message created as {message_id}",
            extra={"queue_url": self.url, "deduplication_id": deduplication_id},
        )
        return message_id

    async def receive(self, max_messages: int = 5) -> List[QueueMessage]:
        response = await self._call(
            "receive_message",
            QueueUrl=self.url,
            MaxNumberOfMessages=max(1, min(max_messages, 10)),
            WaitTimeSeconds=self.wait_time_seconds,
            VisibilityTimeout=self.visibility_timeout,
        )
        return [
            QueueMessage(
                message_id=raw.get("MessageId", ""),
                body=raw.get("Body", ""),
                receipt=raw.get("ReceiptHandle"),
            )
            for raw in response.get("Messages", [])
        ]

    async def ack(self, message: QueueMessage) -> None:
        await self._call("delete_message", QueueUrl=self.url, ReceiptHandle=message.receipt)

    async def release(self, message: QueueMessage) -> None:
        logger.info(f"Leaving message {message.message_id} for redelivery after the visibility timeout")


class SQSQueueRegistry:
    """One SQSWorkQueue per queue URL, shared across tenants."""

    def __init__(self, factory=SQSWorkQueue):
        self.factory = factory
        self._queues: Dict[str, SQSWorkQueue] = {}

    def get(self, settings: QueueSettings) -> SQSWorkQueue:
        queue = self._queues.get(settings.url)
        if queue is None:
            queue = self.factory(settings)
            self._queues[settings.url] = queue
        return queue

    def queues(self) -> List[SQSWorkQueue]:
        return list(self._queues.values())
