"""
WhatsApp Response Sender

Sends replies back through the WhatsApp Cloud API.
No formatting intelligence. No retries. No logic.
"""

import logging
from typing import Optional

import httpx

from eva.errors import DeliveryError
from infra.bot_config import WhatsAppSettings
from services.audio.tempfiles import scoped_temp_file

from .schemas import WhatsAppMessageResponse

logger = logging.getLogger(__name__)


class WhatsAppSender:
    """
    Delivery adapter for text and audio replies.

    Every method raises DeliveryError on failure; callers log and move on.
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        tmp_dir: Optional[str] = None,
    ):
        self.http_client = http_client
        self.timeout = timeout
        self.tmp_dir = tmp_dir

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(timeout=self.timeout)
        return self.http_client

    async def _post(self, url: str, settings: WhatsAppSettings, **kwargs) -> dict:
        client = await self._get_http_client()
        try:
            response = await client.post(
                url,
                headers={"Authorization": f"Bearer {settings.token}"},
                **kwargs,
            )
        except httpx.RequestError as e:
            logger.error(f"HTTP request failed: {e}", exc_info=True)
            raise DeliveryError(f"HTTP request failed: {e}")

        if response.status_code != 200:
            error_text = response.text
            logger.error(
                f"WhatsApp API error: {response.status_code} - {error_text}",
                extra={
                    "status_code": response.status_code,
                    "error_body": error_text,
                }
            )
            raise DeliveryError(f"WhatsApp API returned {response.status_code}")

        try:
            return response.json()
        except ValueError:
            return {}

    async def send_text(
        self,
        phone_number_id: str,
        to: str,
        body: str,
        settings: WhatsAppSettings,
    ) -> WhatsAppMessageResponse:
        """
        Send a text message.

        Args:
            phone_number_id: Business number sending the message
            to: Recipient phone number
            body: Message text
            settings: Graph API access for the business number

        Raises:
            DeliveryError: If send fails
        """
        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to,
            "type": "text",
            "text": {"body": body},
        }
        result = await self._post(f"{settings.base_url}/{phone_number_id}/messages", settings, json=payload)
        logger.info(f"Text message sent to {to}", extra={"phone_number_id": phone_number_id})
        return WhatsAppMessageResponse(**result)

    async def upload_media(
        self,
        phone_number_id: str,
        audio: bytes,
        settings: WhatsAppSettings,
        mime_type: str = "audio/mpeg",
    ) -> str:
        """Upload audio as provider-hosted media. Returns the media ID."""
        with scoped_temp_file(audio, suffix=".mp3", directory=self.tmp_dir) as tmp_path:
            with open(tmp_path, "rb") as audio_file:
                result = await self._post(
                    f"{settings.base_url}/{phone_number_id}/media",
                    settings,
                    files={"file": (tmp_path.name, audio_file, mime_type)},
                    data={"messaging_product": "whatsapp", "type": mime_type},
                )

        media_id = result.get("id")
        if not media_id:
            raise DeliveryError("Media upload returned no ID")
        return media_id

    async def send_audio(
        self,
        phone_number_id: str,
        to: str,
        audio: bytes,
        settings: WhatsAppSettings,
    ) -> WhatsAppMessageResponse:
        """
        Upload audio, then send a message referencing it.

        Two sequential calls. If the send fails after a successful upload,
        the uploaded media is left on the provider.

        Raises:
            DeliveryError: If either call fails
        """
        media_id = await self.upload_media(phone_number_id, audio, settings)
        logger.info(f"Sending audio message using media ID {media_id}")

        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to,
            "type": "audio",
            "audio": {"id": media_id},
        }
        result = await self._post(f"{settings.base_url}/{phone_number_id}/messages", settings, json=payload)
        logger.info(f"Audio message sent to {to}", extra={"phone_number_id": phone_number_id})
        return WhatsAppMessageResponse(**result)

    async def close(self):
        """Close HTTP client."""
        if self.http_client:
            await self.http_client.aclose()
