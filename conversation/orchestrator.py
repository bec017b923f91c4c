"""
Conversation Orchestrator

The per-conversation state machine:

    NoSession -> Greeting -> Active (upstream session id) -> Expired -> NoSession

One inbound message is one turn:
  1. resolve or create the session
  2. transcribe audio (no text -> silent drop)
  3. pick the template: Greeting without an upstream session id, else Context
  4. build the ask request
  5. call EVA (token refresh + single retry on expiry)
  6. record the upstream session id, refresh the session timestamp
  7. reply as text, or as synthesized audio for voice conversations
  8. after a Greeting exchange, run exactly one Context exchange with the
     same inbound text

Nothing raised inside a turn escapes handle_inbound.
"""

import asyncio
import logging
from typing import Dict, Optional

from eva.client import EvaClient
from eva.credentials import CredentialCache
from eva.errors import (
    DeliveryError,
    MediaFetchError,
    TranscriptionError,
    ValidationError,
)
from eva.schemas import AskRequest, AskResponse, Template
from infra.bot_config import BotConfig
from services.audio.bridge import AudioBridge
from sessions.base import SessionStore
from sessions.types import Session
from transport.whatsapp.normalize import normalize_message
from transport.whatsapp.schemas import InboundMessage
from transport.whatsapp.sender import WhatsAppSender

logger = logging.getLogger(__name__)


def build_username(phone_number_id: str, client_id: str) -> str:
    return f"WHATSAPP - {phone_number_id} - {client_id}"


def build_ask_request(session: Session, text: str, config: BotConfig) -> AskRequest:
    """
    Build the ask payload for the session's current state.

    Greeting: seeded with the configured greeting prompt, document search off.
    Context: the user's text, document search per config, session id carried.
    """
    bot = config.bot
    common = dict(
        temperature=bot.temperature,
        client_id=config.auth.client_id,
        username=build_username(session.phone_number_id, config.auth.client_id),
        cl=bot.cl,
        engine=bot.engine,
    )

    if session.is_greeting:
        return AskRequest(
            template=Template.GREETING,
            query=bot.greeting_message,
            memory=bot.greeting_memory,
            search_docs=False,
            **common,
        )

    return AskRequest(
        template=Template.CONTEXT,
        query=text,
        memory="{}",
        search_docs=bot.search_docs,
        session_id=session.upstream_session_id,
        **common,
    )


class ConversationOrchestrator:
    """Runs conversation turns against EVA and replies through WhatsApp."""

    def __init__(
        self,
        sessions: SessionStore,
        eva_client: EvaClient,
        credentials: CredentialCache,
        audio: AudioBridge,
        sender: WhatsAppSender,
        serialize_per_conversation: bool = False,
    ):
        self.sessions = sessions
        self.eva_client = eva_client
        self.credentials = credentials
        self.audio = audio
        self.sender = sender
        self.serialize_per_conversation = serialize_per_conversation
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def process_event(self, event: dict, config: BotConfig, message_id: Optional[str] = None) -> None:
        """
        Normalize a raw webhook event and run the turn.

        Unsupported or malformed events are logged and dropped.
        """
        try:
            message = normalize_message(event)
        except ValidationError as e:
            logger.warning(f"[process_event message_id={message_id}] Dropping event: {e}")
            return
        await self.handle_inbound(message, config, message_id=message_id or message.message_id)

    async def handle_inbound(
        self,
        message: InboundMessage,
        config: BotConfig,
        message_id: Optional[str] = None,
    ) -> None:
        """Run one conversation turn. Never raises."""
        message_id = message_id or message.message_id
        if not self.serialize_per_conversation:
            await self._handle(message, config, message_id)
            return

        key = message.conversation_key
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                await self._handle(message, config, message_id)
        finally:
            self._waiters[key] -= 1
            if not self._waiters[key]:
                del self._waiters[key]
                del self._locks[key]

    # ------------------------------------------------------------------
    # Turn
    # ------------------------------------------------------------------

    async def _handle(self, message: InboundMessage, config: BotConfig, message_id: str) -> None:
        key = message.conversation_key
        context = {"conversation_key": key, "message_id": message_id}
        logger.info(f"[handle_inbound message_id={message_id}] Handling {message.kind} message for {key}", extra=context)

        try:
            session = self.sessions.get_or_create(key, message.phone_number_id, message.reply_to, config)

            if message.kind == "audio":
                text = await self._transcribe(message, config, message_id)
                if not text:
                    logger.info(f"[handle_inbound message_id={message_id}] No text recognized, dropping turn", extra=context)
                    return
                reply_as_audio = config.bot.reply_audio_type == "audio"
            else:
                text = message.text_body or ""
                reply_as_audio = False

            template = await self._exchange(session, text, config, reply_as_audio, message_id)

            if template == Template.GREETING:
                if session.upstream_session_id:
                    await self._exchange(session, text, config, reply_as_audio, message_id)
                else:
                    logger.warning(
                        f"[handle_inbound message_id={message_id}] Greeting returned no session id, skipping follow-up",
                        extra=context,
                    )

        except ValidationError as e:
            logger.warning(f"[handle_inbound message_id={message_id}] Dropping message: {e}", extra=context)

        except Exception as e:
            logger.error(
                f"[handle_inbound message_id={message_id}] Error handling message for {key}: {e}",
                exc_info=True,
                extra=context,
            )
            await self._send_unexpected_error(message, config, message_id)

    async def _transcribe(self, message: InboundMessage, config: BotConfig, message_id: str) -> Optional[str]:
        try:
            return await self.audio.fetch_and_transcribe(message.audio_id, config, message_id=message_id)
        except (MediaFetchError, TranscriptionError) as e:
            logger.warning(
                f"[handle_inbound message_id={message_id}] Audio pipeline failed: {e}",
                extra={"conversation_key": message.conversation_key, "message_id": message_id},
            )
            return None

    async def _exchange(
        self,
        session: Session,
        text: str,
        config: BotConfig,
        reply_as_audio: bool,
        message_id: str,
    ) -> Template:
        """One request/reply round with EVA. Returns the template used."""
        key = session.conversation_key
        request = build_ask_request(session, text, config)
        logger.info(f"[exchange message_id={message_id}] Asking EVA with {request.template.value} for {key}")

        async def ask(token: str) -> AskResponse:
            return await self.eva_client.ask(config.auth, token, request)

        response = await self.credentials.call(config.auth, ask)

        if response.session_id and not session.upstream_session_id:
            self.sessions.set_upstream_session_id(key, response.session_id)
            session.upstream_session_id = response.session_id
            logger.info(f"[exchange message_id={message_id}] Session {key} is now active ({response.session_id})")
        self.sessions.touch(key)

        await self._reply(session, response.message, config, reply_as_audio, message_id)
        return request.template

    async def _reply(
        self,
        session: Session,
        body: str,
        config: BotConfig,
        reply_as_audio: bool,
        message_id: str,
    ) -> None:
        if not body:
            logger.warning(f"[reply message_id={message_id}] EVA returned an empty message, nothing to send")
            return

        try:
            if reply_as_audio:
                audio = await self.audio.synthesize(body, config)
                await self.sender.send_audio(session.phone_number_id, session.reply_to, audio, config.whatsapp)
            else:
                await self.sender.send_text(session.phone_number_id, session.reply_to, body, config.whatsapp)
        except DeliveryError as e:
            logger.error(f"[reply message_id={message_id}] Delivery to {session.reply_to} failed: {e}")
            return

        self.sessions.touch(session.conversation_key)

    async def _send_unexpected_error(self, message: InboundMessage, config: BotConfig, message_id: str) -> None:
        text = config.bot.unexpected_error
        if not text:
            return
        try:
            await self.sender.send_text(message.phone_number_id, message.reply_to, text, config.whatsapp)
        except DeliveryError as e:
            logger.error(f"[handle_inbound message_id={message_id}] Failed to send error reply: {e}")
