"""
Infrastructure configuration system.

Environment-based selection of ingress mode, queue backend and bot config
source, with defaults for a single-process deployment.
"""

import os
from typing import Optional, Literal
from dataclasses import dataclass

from config import Config
from infra.bot_config import BotConfigProvider, RemoteBotConfigProvider, StaticBotConfigProvider
from sessions import InMemorySessionStore, SessionStore
from workqueue import LocalWorkQueue


IngressMode = Literal["inline", "queue"]
QueueBackendType = Literal["local", "sqs"]
BotConfigSource = Literal["static", "remote"]


@dataclass
class InfraConfig:
    """Infrastructure configuration from environment."""

    # Ingress
    ingress_mode: IngressMode
    processing_timeout_seconds: float

    # Queue
    queue_backend: QueueBackendType
    queue_consumer_enabled: bool

    # Bot config
    bot_config_source: BotConfigSource
    bot_config_cache_seconds: float

    # Conversations
    reaper_interval_seconds: float
    serialize_per_conversation: bool
    audio_tmp_dir: Optional[str]

    @classmethod
    def from_env(cls) -> "InfraConfig":
        """
        Load configuration from environment variables.

        Defaults:
        - Ingress: inline (processed in a background task of the webhook)
        - Queue: local asyncio queue, consumer enabled
        - Bot config: remote when EVA_URL and EVA_API_KEY are set, else static
        """
        default_source = "remote" if Config.uses_remote_bot_config() else "static"
        return cls(
            ingress_mode=os.getenv("INGRESS_MODE", "inline"),  # type: ignore
            processing_timeout_seconds=float(os.getenv("PROCESSING_TIMEOUT_SECONDS", "150")),
            queue_backend=os.getenv("QUEUE_BACKEND", "local"),  # type: ignore
            queue_consumer_enabled=os.getenv("QUEUE_CONSUMER_ENABLED", "true").lower() == "true",
            bot_config_source=os.getenv("BOT_CONFIG_SOURCE", default_source),  # type: ignore
            bot_config_cache_seconds=float(os.getenv("BOT_CONFIG_CACHE_SECONDS", "600")),
            reaper_interval_seconds=float(os.getenv("REAPER_INTERVAL_SECONDS", "30")),
            serialize_per_conversation=os.getenv("SERIALIZE_PER_CONVERSATION", "false").lower() == "true",
            audio_tmp_dir=os.getenv("AUDIO_TMP_DIR") or None,
        )

    @property
    def uses_queue(self) -> bool:
        return self.ingress_mode == "queue"

    def create_bot_config_provider(self) -> BotConfigProvider:
        """Create bot config provider based on configuration."""
        if self.bot_config_source == "remote":
            return RemoteBotConfigProvider(
                url=Config.EVA_CONFIG_URL,
                api_key=Config.EVA_CONFIG_API_KEY,
                cache_seconds=self.bot_config_cache_seconds,
            )
        return StaticBotConfigProvider.from_env()

    def create_session_store(self) -> SessionStore:
        return InMemorySessionStore()

    def create_local_queue(self) -> Optional[LocalWorkQueue]:
        """Local queue, or None when events are not queued in-process."""
        if self.uses_queue and self.queue_backend == "local":
            return LocalWorkQueue()
        return None


def get_config() -> InfraConfig:
    """Get global infrastructure configuration."""
    return InfraConfig.from_env()
