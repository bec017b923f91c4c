"""
Infrastructure Bootstrap Tests

Environment parsing and queue routing per ingress mode.
"""

from unittest.mock import MagicMock

import pytest

from infra.bootstrap import InfraBootstrap
from infra.bot_config import QueueSettings, RemoteBotConfigProvider, StaticBotConfigProvider
from infra.config import InfraConfig
from workqueue import LocalWorkQueue


def infra_config(**overrides) -> InfraConfig:
    fields = dict(
        ingress_mode="inline",
        processing_timeout_seconds=150.0,
        queue_backend="local",
        queue_consumer_enabled=True,
        bot_config_source="static",
        bot_config_cache_seconds=600.0,
        reaper_interval_seconds=30.0,
        serialize_per_conversation=False,
        audio_tmp_dir=None,
    )
    fields.update(overrides)
    return InfraConfig(**fields)


@pytest.fixture(autouse=True)
def reset_singleton():
    InfraBootstrap.reset()
    yield
    InfraBootstrap.reset()


class TestInfraConfig:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("INGRESS_MODE", "queue")
        monkeypatch.setenv("QUEUE_BACKEND", "sqs")
        monkeypatch.setenv("PROCESSING_TIMEOUT_SECONDS", "90")
        monkeypatch.setenv("SERIALIZE_PER_CONVERSATION", "true")
        monkeypatch.setenv("BOT_CONFIG_SOURCE", "remote")

        config = InfraConfig.from_env()

        assert config.uses_queue
        assert config.queue_backend == "sqs"
        assert config.processing_timeout_seconds == 90.0
        assert config.serialize_per_conversation is True
        assert isinstance(config.create_bot_config_provider(), RemoteBotConfigProvider)

    def test_defaults(self, monkeypatch):
        for key in ("INGRESS_MODE", "REAPER_INTERVAL_SECONDS", "BOT_CONFIG_CACHE_SECONDS", "AUDIO_TMP_DIR"):
            monkeypatch.delenv(key, raising=False)

        config = InfraConfig.from_env()

        assert config.ingress_mode == "inline"
        assert config.reaper_interval_seconds == 30.0
        assert config.bot_config_cache_seconds == 600.0
        assert config.audio_tmp_dir is None
        assert config.create_local_queue() is None


class TestQueueRouting:
    def test_inline_mode_has_no_queue(self, bot_config):
        bootstrap = InfraBootstrap(infra_config())

        assert isinstance(bootstrap.bot_configs, StaticBotConfigProvider)
        assert bootstrap.queue_for(bot_config) is None

    def test_local_queue_mode(self, bot_config):
        bootstrap = InfraBootstrap(infra_config(ingress_mode="queue"))

        assert isinstance(bootstrap.queue_for(bot_config), LocalWorkQueue)

    def test_sqs_mode_routes_by_tenant(self, make_bot_config):
        bootstrap = InfraBootstrap(infra_config(ingress_mode="queue", queue_backend="sqs"))
        bootstrap.sqs_queues.factory = lambda settings: MagicMock(settings=settings)
        settings = QueueSettings(url="https://sqs.test/1/eva.fifo", access_key_id="a", secret_access_key="b")

        assert bootstrap.queue_for(make_bot_config()) is None
        assert bootstrap.queue_for(make_bot_config(sqs=settings)).settings is settings

    def test_singleton(self):
        first = InfraBootstrap.get_instance(infra_config())

        assert InfraBootstrap.get_instance() is first


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_stop_local_consumer(self):
        bootstrap = InfraBootstrap(infra_config(ingress_mode="queue"))

        await bootstrap.start()
        assert len(bootstrap.consumers) == 1
        assert bootstrap.consumers[0].queue is bootstrap.local_queue

        await bootstrap.stop()
        assert bootstrap.consumers == []
