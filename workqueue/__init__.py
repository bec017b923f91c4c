"""
Work queue exports.

Inbound events can be routed through a queue instead of being processed
inline by the webhook.
"""

from .base import WorkQueue
from .consumer import QueueConsumer
from .envelope import QueueEnvelope, QueueMessage, deduplication_id, group_id
from .local import LocalWorkQueue

__all__ = [
    "WorkQueue",
    "QueueConsumer",
    "QueueEnvelope",
    "QueueMessage",
    "LocalWorkQueue",
    "group_id",
    "deduplication_id",
]
