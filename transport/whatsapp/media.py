"""
WhatsApp Media Download

Resolves a media ID to its short-lived download URL and fetches the bytes.
Two sequential Graph API calls; any failure is a MediaFetchError.
"""

import logging
from typing import Optional

import httpx

from eva.errors import MediaFetchError
from infra.bot_config import WhatsAppSettings

logger = logging.getLogger(__name__)


class WhatsAppMediaClient:
    """Fetches inbound media (voice notes) from the Graph API."""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None, timeout: float = 60.0):
        self.http_client = http_client
        self.timeout = timeout

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(timeout=self.timeout)
        return self.http_client

    async def resolve_media_url(self, media_id: str, settings: WhatsAppSettings) -> str:
        """GET /{version}/{media_id} -> download URL."""
        client = await self._get_http_client()
        try:
            response = await client.get(
                f"{settings.base_url}/{media_id}",
                headers={"Authorization": f"Bearer {settings.token}"},
            )
        except httpx.RequestError as e:
            raise MediaFetchError(f"Media lookup for {media_id} failed: {e}")

        if response.status_code != 200:
            raise MediaFetchError(
                f"Media lookup for {media_id} returned {response.status_code}: {response.text}"
            )

        try:
            url = response.json().get("url")
        except (ValueError, AttributeError):
            url = None
        if not url:
            raise MediaFetchError(f"Media lookup for {media_id} returned no URL")
        return url

    async def download(self, media_id: str, settings: WhatsAppSettings) -> bytes:
        """Resolve and download media. Returns raw bytes."""
        url = await self.resolve_media_url(media_id, settings)
        client = await self._get_http_client()
        try:
            response = await client.get(url, headers={"Authorization": f"Bearer {settings.token}"})
        except httpx.RequestError as e:
            raise MediaFetchError(f"Media download for {media_id} failed: {e}")

        if response.status_code != 200:
            raise MediaFetchError(f"Media download for {media_id} returned {response.status_code}")

        if not response.content:
            raise MediaFetchError(f"Media download for {media_id} returned no content")

        logger.debug(f"Downloaded {len(response.content)} bytes for media {media_id}")
        return response.content

    async def close(self):
        """Close HTTP client."""
        if self.http_client:
            await self.http_client.aclose()
