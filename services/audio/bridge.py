"""
Audio Bridge

Voice-note round trips between WhatsApp and the EVA speech endpoints:

  inbound:  media ID -> download -> temp file -> /speech/from-audio -> text
  outbound: text -> /speech/from-text -> audio bytes

Both EVA calls go through the credential cache, so an expired token is
refreshed and the call retried once.
"""

import logging
from typing import Optional

from eva.client import EvaClient
from eva.credentials import CredentialCache
from eva.errors import TranscriptionError, UpstreamApiError
from infra.bot_config import BotConfig
from transport.whatsapp.media import WhatsAppMediaClient

from .tempfiles import scoped_temp_file

logger = logging.getLogger(__name__)

TRANSCRIPTION_LANGUAGE = "pt_BR"
SYNTHESIS_LANGUAGE = "pt"


class AudioBridge:
    """Speech-to-text and text-to-speech through the EVA API."""

    def __init__(
        self,
        eva_client: EvaClient,
        credentials: CredentialCache,
        media_client: WhatsAppMediaClient,
        tmp_dir: Optional[str] = None,
    ):
        self.eva_client = eva_client
        self.credentials = credentials
        self.media_client = media_client
        self.tmp_dir = tmp_dir

    async def fetch_and_transcribe(
        self,
        audio_id: str,
        config: BotConfig,
        message_id: Optional[str] = None,
    ) -> Optional[str]:
        """
        Download a voice note and transcribe it.

        Args:
            audio_id: WhatsApp media ID
            config: Tenant config (Graph access + EVA auth)
            message_id: For log context only

        Returns:
            Recognized text, or None when nothing was recognized

        Raises:
            MediaFetchError: media could not be resolved or downloaded
            TranscriptionError: the speech endpoint failed
            AuthError: the token was rejected twice in a row
        """
        audio = await self.media_client.download(audio_id, config.whatsapp)
        logger.info(
            f"Downloaded {len(audio)} bytes for audio {audio_id}",
            extra={"message_id": message_id},
        )

        with scoped_temp_file(audio, suffix=".mp3", directory=self.tmp_dir) as audio_path:

            async def transcribe(token: str) -> Optional[str]:
                return await self.eva_client.speech_from_audio(
                    config.auth, token, audio_path, TRANSCRIPTION_LANGUAGE
                )

            try:
                text = await self.credentials.call(config.auth, transcribe)
            except UpstreamApiError as e:
                raise TranscriptionError(f"Transcription of {audio_id} failed: {e}") from e

        text = (text or "").strip()
        logger.info(
            f"Transcribed audio {audio_id}: {text[:100]}",
            extra={"message_id": message_id},
        )
        return text or None

    async def synthesize(self, text: str, config: BotConfig) -> bytes:
        """
        Render `text` as speech.

        Raises:
            UpstreamApiError: the speech endpoint failed
            AuthError: the token was rejected twice in a row
        """

        async def render(token: str) -> bytes:
            return await self.eva_client.speech_from_text(config.auth, token, text, SYNTHESIS_LANGUAGE)

        return await self.credentials.call(config.auth, render)
