"""
Work Queue Backend Tests

Envelope wire shape, the in-process queue and the SQS queue (boto3 client
mocked).
"""

import json
from unittest.mock import MagicMock

import pytest

from eva.errors import ValidationError
from infra.bot_config import QueueSettings
from workqueue import LocalWorkQueue, QueueEnvelope, deduplication_id, group_id
from workqueue.sqs import SQSQueueRegistry, SQSWorkQueue

FIFO_SETTINGS = QueueSettings(
    url="https://sqs.us-east-1.amazonaws.com/123/eva.fifo",
    access_key_id="AKIA",
    secret_access_key="shh",
)


class TestEnvelope:
    def test_wire_shape(self, bot_config, text_payload):
        body = json.loads(QueueEnvelope(event=text_payload, bot_config=bot_config).to_body())

        assert set(body) == {"event", "botConfig"}
        assert body["event"] == text_payload
        assert body["botConfig"]["bot"]["sessionTimeout"] == bot_config.bot.session_timeout_ms

    def test_from_body(self, bot_config, text_payload):
        envelope = QueueEnvelope.from_body(QueueEnvelope(event=text_payload, bot_config=bot_config).to_body())

        assert envelope.bot_config == bot_config

    @pytest.mark.parametrize("body", ["", "[]", '{"event": {}}', '{"botConfig": {}}'])
    def test_invalid_body(self, body):
        with pytest.raises(ValidationError):
            QueueEnvelope.from_body(body)

    def test_fifo_ids(self):
        assert group_id("PNID", "555") == "PNID-555"
        assert deduplication_id("PNID", "555", 1700000000123) == "PNID-555-1700000000123"


class TestLocalWorkQueue:
    @pytest.mark.asyncio
    async def test_send_and_receive(self, bot_config, text_payload):
        queue = LocalWorkQueue(wait_seconds=0.01)
        envelope = QueueEnvelope(event=text_payload, bot_config=bot_config)
        for _ in range(3):
            await queue.send(envelope)

        batch = await queue.receive(max_messages=2)

        assert len(batch) == 2
        assert QueueEnvelope.from_body(batch[0].body) == envelope
        assert queue.qsize() == 1

    @pytest.mark.asyncio
    async def test_empty_receive_returns_nothing(self):
        assert await LocalWorkQueue(wait_seconds=0.01).receive() == []

    @pytest.mark.asyncio
    async def test_release_requeues(self, bot_config, text_payload):
        queue = LocalWorkQueue(wait_seconds=0.01)
        await queue.send(QueueEnvelope(event=text_payload, bot_config=bot_config))
        [message] = await queue.receive()

        await queue.release(message)

        [again] = await queue.receive()
        assert again.message_id == message.message_id


class TestSQSWorkQueue:
    @pytest.fixture
    def sqs_client(self):
        client = MagicMock()
        client.send_message.return_value = {"MessageId": "sqs-1"}
        client.receive_message.return_value = {
            "Messages": [{"MessageId": "sqs-1", "Body": "{}", "ReceiptHandle": "rh-1"}]
        }
        return client

    @pytest.mark.asyncio
    async def test_send_to_fifo_queue(self, sqs_client, bot_config, text_payload):
        queue = SQSWorkQueue(FIFO_SETTINGS, client=sqs_client)
        envelope = QueueEnvelope(event=text_payload, bot_config=bot_config)

        message_id = await queue.send(envelope, group_id="PNID-555", deduplication_id="PNID-555-1")

        assert message_id == "sqs-1"
        kwargs = sqs_client.send_message.call_args.kwargs
        assert kwargs["QueueUrl"] == FIFO_SETTINGS.url
        assert kwargs["MessageGroupId"] == "PNID-555"
        assert kwargs["MessageDeduplicationId"] == "PNID-555-1"
        assert json.loads(kwargs["MessageBody"])["event"] == text_payload

    @pytest.mark.asyncio
    async def test_standard_queue_omits_fifo_attributes(self, sqs_client, bot_config, text_payload):
        settings = QueueSettings(url="https://sqs.test/123/eva", access_key_id="a", secret_access_key="b")
        queue = SQSWorkQueue(settings, client=sqs_client)

        await queue.send(QueueEnvelope(event=text_payload, bot_config=bot_config), group_id="g", deduplication_id="d")

        kwargs = sqs_client.send_message.call_args.kwargs
        assert "MessageGroupId" not in kwargs
        assert "MessageDeduplicationId" not in kwargs

    @pytest.mark.asyncio
    async def test_receive_long_polls_with_visibility_timeout(self, sqs_client):
        queue = SQSWorkQueue(FIFO_SETTINGS, client=sqs_client)

        [message] = await queue.receive(max_messages=5)

        kwargs = sqs_client.receive_message.call_args.kwargs
        assert kwargs["VisibilityTimeout"] == 180
        assert kwargs["WaitTimeSeconds"] == 20
        assert kwargs["MaxNumberOfMessages"] == 5
        assert message.message_id == "sqs-1"
        assert message.receipt == "rh-1"

    @pytest.mark.asyncio
    async def test_ack_deletes_and_release_does_not(self, sqs_client):
        queue = SQSWorkQueue(FIFO_SETTINGS, client=sqs_client)
        [message] = await queue.receive()

        await queue.release(message)
        sqs_client.delete_message.assert_not_called()

        await queue.ack(message)
        sqs_client.delete_message.assert_called_once_with(QueueUrl=FIFO_SETTINGS.url, ReceiptHandle="rh-1")

    def test_registry_shares_queue_per_url(self, sqs_client):
        registry = SQSQueueRegistry(factory=lambda settings: SQSWorkQueue(settings, client=sqs_client))

        first = registry.get(FIFO_SETTINGS)
        second = registry.get(FIFO_SETTINGS.model_copy(update={"batch_size": 9}))

        assert first is second
        assert registry.queues() == [first]
