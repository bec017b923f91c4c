"""
Infrastructure initialization and bootstrap.

Singleton pattern for wiring the EVA client, session store, WhatsApp
clients, conversation services and work queues from configuration.
"""

import logging
from typing import List, Optional

from config import Config
from conversation import ConversationOrchestrator, InactivityReaper
from eva.client import EvaClient
from eva.credentials import CredentialCache
from eva.errors import BotConfigError
from services.audio import AudioBridge
from transport.whatsapp.media import WhatsAppMediaClient
from transport.whatsapp.sender import WhatsAppSender
from workqueue import QueueConsumer, WorkQueue
from workqueue.sqs import SQSQueueRegistry

from .bot_config import BotConfig
from .config import InfraConfig, get_config

logger = logging.getLogger(__name__)


class InfraBootstrap:
    """
    Bootstrap infrastructure based on configuration.

    Singleton pattern - single instance per process.
    """

    _instance: Optional["InfraBootstrap"] = None

    def __init__(self, config: Optional[InfraConfig] = None):
        """Initialize bootstrap with configuration."""
        self.config = config or get_config()
        self.bot_configs = self.config.create_bot_config_provider()
        self.sessions = self.config.create_session_store()

        self.eva_client = EvaClient(timeout=Config.HTTP_TIMEOUT_SECONDS)
        self.credentials = CredentialCache(self.eva_client)
        self.media_client = WhatsAppMediaClient(timeout=Config.HTTP_TIMEOUT_SECONDS)
        self.sender = WhatsAppSender(timeout=Config.HTTP_TIMEOUT_SECONDS, tmp_dir=self.config.audio_tmp_dir)
        self.audio = AudioBridge(
            self.eva_client,
            self.credentials,
            self.media_client,
            tmp_dir=self.config.audio_tmp_dir,
        )

        self.orchestrator = ConversationOrchestrator(
            self.sessions,
            self.eva_client,
            self.credentials,
            self.audio,
            self.sender,
            serialize_per_conversation=self.config.serialize_per_conversation,
        )
        self.reaper = InactivityReaper(
            self.sessions,
            self.sender,
            interval_seconds=self.config.reaper_interval_seconds,
        )

        self.local_queue = self.config.create_local_queue()
        self.sqs_queues = SQSQueueRegistry()
        self.consumers: List[QueueConsumer] = []

    @classmethod
    def get_instance(cls, config: Optional[InfraConfig] = None) -> "InfraBootstrap":
        """
        Get singleton instance.

        Args:
            config: Optional custom configuration (only used first time)

        Returns:
            Singleton InfraBootstrap instance
        """
        if cls._instance is None:
            cls._instance = cls(config)
        return cls._instance

    @classmethod
    def reset(cls):
        """Reset singleton (for testing)."""
        cls._instance = None

    def queue_for(self, bot_config: BotConfig) -> Optional[WorkQueue]:
        """
        Queue an event for this tenant goes through, or None for inline processing.

        With the SQS backend, tenants without an `sqs` block are processed inline.
        """
        if not self.config.uses_queue:
            return None
        if self.config.queue_backend == "sqs":
            if bot_config.sqs is None:
                return None
            return self.sqs_queues.get(bot_config.sqs)
        return self.local_queue

    async def _build_consumers(self) -> List[QueueConsumer]:
        timeout = self.config.processing_timeout_seconds
        if self.config.queue_backend == "local":
            return [QueueConsumer(self.local_queue, self.orchestrator, timeout_seconds=timeout)]

        try:
            configs = await self.bot_configs.all()
        except BotConfigError as e:
            logger.error(f"Cannot start SQS consumers: {e}")
            return []

        consumers = []
        seen = set()
        for bot_config in configs.values():
            if bot_config.sqs is None or bot_config.sqs.url in seen:
                continue
            seen.add(bot_config.sqs.url)
            consumers.append(
                QueueConsumer(
                    self.sqs_queues.get(bot_config.sqs),
                    self.orchestrator,
                    timeout_seconds=timeout,
                    batch_size=bot_config.sqs.batch_size,
                )
            )
        return consumers

    async def start(self) -> None:
        """Start background workers: the reaper and, in queue mode, the consumers."""
        self.reaper.start()
        if self.config.uses_queue and self.config.queue_consumer_enabled:
            self.consumers = await self._build_consumers()
            for consumer in self.consumers:
                consumer.start()
            logger.info(f"Started {len(self.consumers)} queue consumer(s)")

    async def stop(self) -> None:
        """Stop background workers and close HTTP clients."""
        for consumer in self.consumers:
            await consumer.stop()
        self.consumers = []
        await self.reaper.stop()

        await self.eva_client.close()
        await self.media_client.close()
        await self.sender.close()
        if hasattr(self.bot_configs, "close"):
            await self.bot_configs.close()

    def __repr__(self) -> str:
        """String representation showing configured backends."""
        return (
            f"InfraBootstrap(ingress={self.config.ingress_mode}, "
            f"queue={self.config.queue_backend if self.config.uses_queue else 'disabled'}, "
            f"bot_config={self.config.bot_config_source}, "
            f"sessions={len(self.sessions)})"
        )


def bootstrap_infrastructure(config: Optional[InfraConfig] = None) -> InfraBootstrap:
    """
    Bootstrap all infrastructure backends.

    Args:
        config: Optional custom configuration

    Returns:
        InfraBootstrap instance with all backends initialized
    """
    return InfraBootstrap.get_instance(config)


def get_bootstrap() -> InfraBootstrap:
    """FastAPI dependency returning the process-wide bootstrap."""
    return InfraBootstrap.get_instance()
