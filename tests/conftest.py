"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add project root to sys.path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from infra.bot_config import BotConfig, BotSettings, EvaAuth, WhatsAppSettings  # noqa: E402


def build_bot_config(**bot_overrides) -> BotConfig:
    """BotConfig for tests; keyword arguments override BotSettings fields."""
    whatsapp = bot_overrides.pop("whatsapp", None) or WhatsAppSettings(
        url="https://graph.test",
        version="v16.0",
        token="wa-token",
    )
    sqs = bot_overrides.pop("sqs", None)
    return BotConfig(
        bot=BotSettings(**bot_overrides),
        auth=EvaAuth(client_id="client-1", password="secret", host="https://eva.test"),
        whatsapp=whatsapp,
        sqs=sqs,
    )


def build_payload(
    message: dict,
    phone_number_id: str = "PNID",
    sender: str = "5511999999999",
) -> dict:
    """WhatsApp Cloud webhook payload wrapping a single message."""
    message = {"from": sender, "id": "wamid.TEST", "timestamp": "1700000000", **message}
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "WABA_ID",
                "changes": [
                    {
                        "field": "messages",
                        "value": {
                            "messaging_product": "whatsapp",
                            "metadata": {
                                "display_phone_number": "15550000000",
                                "phone_number_id": phone_number_id,
                            },
                            "messages": [message],
                        },
                    }
                ],
            }
        ],
    }


@pytest.fixture
def bot_config() -> BotConfig:
    return build_bot_config()


@pytest.fixture
def text_payload() -> dict:
    return build_payload({"type": "text", "text": {"body": "Oi"}})


@pytest.fixture
def audio_payload() -> dict:
    return build_payload({"type": "audio", "audio": {"id": "MEDIA_ID", "mime_type": "audio/ogg"}})


@pytest.fixture
def make_bot_config():
    return build_bot_config


@pytest.fixture
def make_payload():
    return build_payload
