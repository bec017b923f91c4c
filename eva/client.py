"""
EVA API client.

Thin async wrapper over the four EVA endpoints used by the bridge:
login, ask, speech-from-audio and speech-from-text.

Every non-2xx response is classified here, once:
- HTTP 401, or a body whose `message` is the token-expired sentinel -> AuthError
- anything else -> UpstreamApiError
Callers never inspect response bodies.
"""

import logging
from pathlib import Path
from typing import Optional

import httpx

from infra.bot_config import EvaAuth

from .errors import AuthError, UpstreamApiError
from .schemas import AskRequest, AskResponse

logger = logging.getLogger(__name__)

TOKEN_EXPIRED_MESSAGE = "Token expirado ou não autorizado!"


def _message_field(response: httpx.Response) -> Optional[str]:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        message = data.get("message")
        return message if isinstance(message, str) else None
    return None


def is_auth_failure(response: httpx.Response) -> bool:
    """True when upstream rejected the bearer token."""
    if response.status_code == 401:
        return True
    return _message_field(response) == TOKEN_EXPIRED_MESSAGE


class EvaClient:
    """Async client for the EVA conversational and speech API."""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None, timeout: float = 60.0):
        self.http_client = http_client
        self.timeout = timeout

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(timeout=self.timeout)
        return self.http_client

    @staticmethod
    def _url(auth: EvaAuth, path: str) -> str:
        return f"{auth.host.rstrip('/')}/api/{path}"

    @staticmethod
    def _raise_for_response(response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return
        if is_auth_failure(response):
            raise AuthError(f"{operation}: token expired or unauthorized")
        raise UpstreamApiError(
            f"{operation} returned {response.status_code}",
            status_code=response.status_code,
            body=response.text,
        )

    async def _post(self, operation: str, url: str, **kwargs) -> httpx.Response:
        client = await self._get_http_client()
        try:
            response = await client.post(url, **kwargs)
        except httpx.RequestError as e:
            raise UpstreamApiError(f"{operation} request failed: {e}")
        self._raise_for_response(response, operation)
        return response

    async def login(self, auth: EvaAuth) -> str:
        """
        Exchange client credentials for a bearer token.

        Raises:
            AuthError: transport failure, rejected credentials, or no token in the response
        """
        client = await self._get_http_client()
        try:
            response = await client.post(
                self._url(auth, "login"),
                json={"client_id": auth.client_id, "password": auth.password},
            )
        except httpx.RequestError as e:
            raise AuthError(f"login request failed: {e}")

        if not response.is_success:
            raise AuthError(f"login returned {response.status_code}")

        token = _message_field(response)
        if not token:
            raise AuthError("login response carries no token")
        return token

    async def ask(self, auth: EvaAuth, token: str, request: AskRequest) -> AskResponse:
        """POST /api/ai/ask."""
        response = await self._post(
            "ask",
            self._url(auth, "ai/ask"),
            json=request.to_wire(),
            headers={"Authorization": f"Bearer {token}"},
        )
        try:
            return AskResponse.model_validate(response.json())
        except ValueError as e:
            raise UpstreamApiError(f"ask returned an invalid body: {e}", status_code=response.status_code)

    async def speech_from_audio(
        self,
        auth: EvaAuth,
        token: str,
        audio_path: Path,
        language: str = "pt_BR",
    ) -> Optional[str]:
        """POST /api/speech/from-audio (multipart). Returns the recognized text."""
        with open(audio_path, "rb") as audio_file:
            response = await self._post(
                "speech_from_audio",
                self._url(auth, "speech/from-audio"),
                files={"audio": (Path(audio_path).name, audio_file, "audio/mpeg")},
                data={"language": language},
                headers={"Authorization": f"Bearer {token}"},
            )
        try:
            data = response.json()
        except ValueError:
            raise UpstreamApiError("speech_from_audio returned an invalid body", status_code=response.status_code)
        return data.get("text") if isinstance(data, dict) else None

    async def speech_from_text(
        self,
        auth: EvaAuth,
        token: str,
        text: str,
        language: str = "pt",
    ) -> bytes:
        """POST /api/speech/from-text. Returns raw audio bytes."""
        response = await self._post(
            "speech_from_text",
            self._url(auth, "speech/from-text"),
            json={"text": text, "language": language},
            headers={"Authorization": f"Bearer {token}"},
        )
        return response.content

    async def close(self):
        """Close HTTP client."""
        if self.http_client:
            await self.http_client.aclose()
