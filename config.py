"""
Configuration management for the EVA WhatsApp bridge.

Loads environment variables from .env file and provides typed access to configuration.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(env_path)


class Config:
    """Configuration class for the bridge process."""

    # Server
    PORT = int(os.getenv("PORT", "8080"))
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "60"))

    # WhatsApp webhook
    WHATSAPP_VERIFY_TOKEN = os.getenv("WHATSAPP_WEBHOOK_TOKEN", "")
    WHATSAPP_APP_SECRET = os.getenv("WHATSAPP_APP_SECRET", "")

    # Multi-tenant bot config endpoint
    EVA_CONFIG_URL = os.getenv("EVA_URL", "")
    EVA_CONFIG_API_KEY = os.getenv("EVA_API_KEY", "")

    # Single-tenant fallback
    EVA_HOST = os.getenv("EVA_HOST", "")
    EVA_CLIENT_ID = os.getenv("EVA_CLIENT_ID", "")
    EVA_PASSWORD = os.getenv("EVA_PASSWORD", "")
    WHATSAPP_TOKEN = os.getenv("WHATSAPP_TOKEN", "")
    WHATSAPP_API_URL = os.getenv("WHATSAPP_API_URL", "https://graph.facebook.com")
    WHATSAPP_API_VERSION = os.getenv("WHATSAPP_API_VERSION", "v16.0")

    # Bot defaults (single-tenant)
    SESSION_TIMEOUT = int(os.getenv("SESSION_TIMEOUT", str(10 * 60 * 1000)))
    EVA_BOT_TEMPERATURE = float(os.getenv("EVA_BOT_TEMPERATURE", "0.2"))
    EVA_BOT_SEARCH_DOCS = os.getenv("EVA_BOT_SEARCH_DOCS", "true").lower() == "true"
    EVA_BOT_ENGINE = os.getenv("EVA_BOT_ENGINE", "azure")
    EVA_BOT_CL = os.getenv("EVA_BOT_CL", "1")
    EVA_GREETING_MESSAGE = os.getenv(
        "EVA_GREETING_MESSAGE",
        "Se apresente de maneira informal para o usuário falando sobre é um "
        "assistente virtual especializado da empresa e irá ajudá-lo",
    )
    EVA_EXPIRED_SESSION_MESSAGE = os.getenv("EVA_EXPIRED_SESSION_MESSAGE", "")
    EVA_REPLY_AUDIO_TYPE = os.getenv("EVA_REPLY_AUDIO_TYPE", "text")

    # Work queue (single-tenant, optional)
    SQS_QUEUE_URL = os.getenv("SQS_QUEUE_URL", "")
    AWS_ACCESS_KEY_ID = os.getenv("AWS_ACCESS_KEY_ID", "")
    AWS_SECRET_ACCESS_KEY = os.getenv("AWS_SECRET_ACCESS_KEY", "")
    AWS_REGION = os.getenv("AWS_REGION", "us-east-1")

    @classmethod
    def uses_remote_bot_config(cls) -> bool:
        return bool(cls.EVA_CONFIG_URL and cls.EVA_CONFIG_API_KEY)

    @classmethod
    def missing(cls) -> list:
        """Names of required settings that are not set."""
        if cls.uses_remote_bot_config():
            required = []
        else:
            required = ["EVA_HOST", "EVA_CLIENT_ID", "EVA_PASSWORD", "WHATSAPP_TOKEN"]
        return [key for key in required if not getattr(cls, key)]

    @classmethod
    def validate(cls) -> bool:
        """Validate that required configuration is set."""
        missing = cls.missing()

        if missing:
            print(f"⚠️  Missing required environment variables: {', '.join(missing)}")
            print(f"   Please set them in .env file")
            return False

        return True


if __name__ == "__main__":
    # Test configuration loading
    print("Configuration loaded:")
    print(f"  Port: {Config.PORT}")
    print(f"  Environment: {Config.ENVIRONMENT}")
    print(f"  Bot config: {'remote' if Config.uses_remote_bot_config() else 'static'}")
    print(f"  EVA Host: {Config.EVA_HOST or '✗ Missing'}")
    print(f"  WhatsApp Token: {'✓ Set' if Config.WHATSAPP_TOKEN else '✗ Missing'}")
    print(f"\n  Validation: {'✓ PASSED' if Config.validate() else '✗ FAILED'}")
