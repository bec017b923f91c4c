"""
Session types.

A Session is the per-conversation state kept between inbound messages.
"""

from dataclasses import dataclass
from typing import Optional

from infra.bot_config import BotConfig


@dataclass
class Session:
    """Mutable per-conversation state."""

    conversation_key: str             # "{phone_number_id}-{sender}"
    phone_number_id: str              # Business number the conversation arrived on
    reply_to: str                     # Address replies are delivered to
    last_interaction: float           # Epoch seconds of the last inbound/outbound activity
    config: BotConfig                 # Snapshot captured at creation
    upstream_session_id: Optional[str] = None  # Absent = greeting state

    @property
    def timeout(self) -> float:
        """Inactivity timeout in seconds, from the captured config."""
        return self.config.bot.session_timeout

    @property
    def is_greeting(self) -> bool:
        return not self.upstream_session_id

    def is_expired(self, now: float) -> bool:
        return now - self.last_interaction >= self.timeout
