"""
Per-tenant bot configuration.

A BotConfig is the immutable snapshot of everything one WhatsApp business
number needs: EVA credentials, Graph API access, prompt defaults, session
timeout and (optionally) the work queue it routes through.

Two sources:
- StaticBotConfigProvider: single tenant, built from environment variables
- RemoteBotConfigProvider: multi-tenant map fetched from the config endpoint,
  keyed by phone_number_id, cached for a fixed interval
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Literal, Optional

import httpx
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from config import Config
from eva.errors import BotConfigError

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TIMEOUT_MS = 10 * 60 * 1000
DEFAULT_GREETING_MESSAGE = (
    "Se apresente de maneira informal para o usuário falando sobre é um "
    "assistente virtual especializado da empresa e irá ajudá-lo"
)
DEFAULT_UNEXPECTED_ERROR = "Ocorreu um erro inesperado!"


class BotSettings(BaseModel):
    """Prompt defaults and conversation behaviour."""

    session_timeout_ms: int = Field(DEFAULT_SESSION_TIMEOUT_MS, alias="sessionTimeout")
    greeting_message: str = Field(DEFAULT_GREETING_MESSAGE, alias="greetingMessage")
    greeting_memory: str = Field("{}", alias="greetingMemory")
    search_docs: bool = Field(True, alias="searchDocs")
    temperature: float = 0.2
    cl: str = "1"
    engine: str = "azure"
    reply_audio_type: Literal["audio", "text"] = Field("text", alias="replyAudioType")
    expired_session_message: Optional[str] = Field(None, alias="expiredSessionMessage")
    unexpected_error: Optional[str] = Field(DEFAULT_UNEXPECTED_ERROR, alias="unexpectedError")

    class Config:
        populate_by_name = True
        frozen = True

    @property
    def session_timeout(self) -> float:
        """Session timeout in seconds."""
        return self.session_timeout_ms / 1000


class EvaAuth(BaseModel):
    """Login target for the EVA API."""

    client_id: str
    password: str
    host: str

    class Config:
        frozen = True


class WhatsAppSettings(BaseModel):
    """Graph API access for one business number."""

    url: str = "https://graph.facebook.com"
    version: str = "v16.0"
    token: str
    white_list: List[str] = Field(default_factory=list, alias="whiteList")
    black_list: List[str] = Field(default_factory=list, alias="blackList")

    class Config:
        populate_by_name = True
        frozen = True

    @property
    def base_url(self) -> str:
        return f"{self.url.rstrip('/')}/{self.version}"


class QueueSettings(BaseModel):
    """SQS queue the tenant's inbound events are routed through."""

    url: str
    access_key_id: str = Field(..., alias="accessKeyId")
    secret_access_key: str = Field(..., alias="secretAccessKey")
    region: str = "us-east-1"
    batch_size: int = Field(5, alias="batchSize")

    class Config:
        populate_by_name = True
        frozen = True


class BotConfig(BaseModel):
    """Immutable configuration snapshot for one tenant."""

    bot: BotSettings = Field(default_factory=BotSettings)
    auth: EvaAuth
    whatsapp: WhatsAppSettings
    sqs: Optional[QueueSettings] = None

    class Config:
        populate_by_name = True
        frozen = True
        extra = "ignore"

    def to_wire(self) -> dict:
        """Serialize with the camelCase names used by the config endpoint."""
        return self.model_dump(by_alias=True, mode="json")


class BotConfigProvider(ABC):
    """Resolves the BotConfig for a business phone_number_id."""

    @abstractmethod
    async def get(self, phone_number_id: str) -> Optional[BotConfig]:
        raise NotImplementedError

    @abstractmethod
    async def all(self) -> Dict[str, BotConfig]:
        raise NotImplementedError


class StaticBotConfigProvider(BotConfigProvider):
    """Single-tenant provider: the same config for every number."""

    def __init__(self, config: BotConfig):
        self.config = config

    @classmethod
    def from_env(cls) -> "StaticBotConfigProvider":
        """Build the tenant from the EVA_* / WHATSAPP_* environment variables."""
        bot = {
            "sessionTimeout": Config.SESSION_TIMEOUT,
            "greetingMessage": Config.EVA_GREETING_MESSAGE,
            "searchDocs": Config.EVA_BOT_SEARCH_DOCS,
            "temperature": Config.EVA_BOT_TEMPERATURE,
            "cl": Config.EVA_BOT_CL,
            "engine": Config.EVA_BOT_ENGINE,
            "replyAudioType": Config.EVA_REPLY_AUDIO_TYPE,
            "expiredSessionMessage": Config.EVA_EXPIRED_SESSION_MESSAGE or None,
        }
        try:
            config = BotConfig(
                bot=BotSettings(**bot),
                auth=EvaAuth(
                    client_id=Config.EVA_CLIENT_ID,
                    password=Config.EVA_PASSWORD,
                    host=Config.EVA_HOST,
                ),
                whatsapp=WhatsAppSettings(
                    url=Config.WHATSAPP_API_URL,
                    version=Config.WHATSAPP_API_VERSION,
                    token=Config.WHATSAPP_TOKEN,
                ),
                sqs=QueueSettings(
                    url=Config.SQS_QUEUE_URL,
                    access_key_id=Config.AWS_ACCESS_KEY_ID,
                    secret_access_key=Config.AWS_SECRET_ACCESS_KEY,
                    region=Config.AWS_REGION,
                )
                if Config.SQS_QUEUE_URL
                else None,
            )
        except PydanticValidationError as e:
            raise BotConfigError(f"Invalid static bot configuration: {e}")
        return cls(config)

    async def get(self, phone_number_id: str) -> Optional[BotConfig]:
        return self.config

    async def all(self) -> Dict[str, BotConfig]:
        return {"*": self.config}


class RemoteBotConfigProvider(BotConfigProvider):
    """
    Multi-tenant provider backed by the EVA config endpoint.

    The endpoint returns {phone_number_id: bot_config} and is authenticated
    with an `api-key` header. The whole map is cached for `cache_seconds`;
    entries that fail validation are skipped with an error log.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        cache_seconds: float = 600,
        http_client: Optional[httpx.AsyncClient] = None,
        clock=time.monotonic,
    ):
        self.url = url
        self.api_key = api_key
        self.cache_seconds = cache_seconds
        self.http_client = http_client
        self.clock = clock
        self._cache: Optional[Dict[str, BotConfig]] = None
        self._fetched_at = 0.0

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(timeout=Config.HTTP_TIMEOUT_SECONDS)
        return self.http_client

    def invalidate(self) -> None:
        """Drop the cached map; the next lookup refetches."""
        self._cache = None

    async def _fetch(self) -> Dict[str, BotConfig]:
        client = await self._get_http_client()
        try:
            response = await client.get(self.url, headers={"api-key": self.api_key})
        except httpx.RequestError as e:
            logger.error(f"Error fetching bot config: {e}", exc_info=True)
            raise BotConfigError("Error fetching bot config")

        if response.status_code != 200:
            logger.error(f"Bot config endpoint returned {response.status_code}")
            raise BotConfigError(f"Bot config endpoint returned {response.status_code}")

        try:
            raw = response.json()
        except ValueError:
            raise BotConfigError("Bot config endpoint returned invalid JSON")

        if not isinstance(raw, dict):
            raise BotConfigError("Bot config endpoint must return an object")

        configs = {}
        for phone_number_id, entry in raw.items():
            try:
                configs[str(phone_number_id)] = BotConfig.model_validate(entry)
            except PydanticValidationError as e:
                logger.error(f"Skipping invalid bot config for {phone_number_id}: {e}")
        logger.info(f"Loaded bot config for {len(configs)} number(s)")
        return configs

    async def all(self) -> Dict[str, BotConfig]:
        now = self.clock()
        if self._cache is None or now - self._fetched_at >= self.cache_seconds:
            self._cache = await self._fetch()
            self._fetched_at = now
        return self._cache

    async def get(self, phone_number_id: str) -> Optional[BotConfig]:
        configs = await self.all()
        return configs.get(phone_number_id)

    async def close(self):
        if self.http_client:
            await self.http_client.aclose()
