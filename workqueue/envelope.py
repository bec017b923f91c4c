"""
Queue envelope.

What the webhook enqueues and the consumer processes: the raw webhook event
plus the tenant's bot config snapshot, so the consumer never needs a config
lookup of its own.

Wire shape: {"event": {...}, "botConfig": {...}}
"""

import json
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from eva.errors import ValidationError
from infra.bot_config import BotConfig


def group_id(phone_number_id: str, sender: str) -> str:
    """Messages of one conversation share a FIFO group."""
    return f"{phone_number_id}-{sender}"


def deduplication_id(phone_number_id: str, sender: str, entry_ms: int) -> str:
    return f"{phone_number_id}-{sender}-{entry_ms}"


class QueueEnvelope(BaseModel):
    """Inbound event routed through the work queue."""

    event: dict
    bot_config: BotConfig = Field(..., alias="botConfig")

    class Config:
        populate_by_name = True
        frozen = True

    def to_body(self) -> str:
        return json.dumps({"event": self.event, "botConfig": self.bot_config.to_wire()})

    @classmethod
    def from_body(cls, body: str) -> "QueueEnvelope":
        """
        Parse a queue message body.

        Raises:
            ValidationError: body is not a valid envelope
        """
        try:
            return cls.model_validate(json.loads(body))
        except (ValueError, TypeError, PydanticValidationError) as e:
            raise ValidationError(f"Invalid queue envelope: {e}")


@dataclass
class QueueMessage:
    """A received message, as handed to the consumer."""

    message_id: str
    body: str
    receipt: Optional[Any] = None  # Backend-specific handle for ack/release
