"""
Credential cache for the EVA API.

One bearer token per client_id, fetched lazily through the login exchange
and dropped when upstream reports it expired. There is no TTL: invalidation
is purely reactive.

Concurrent callers that miss at the same time may each log in; the last
token written wins. That is tolerated.
"""

import logging
from typing import Awaitable, Callable, Dict, Optional, TypeVar

from infra.bot_config import EvaAuth

from .client import EvaClient
from .errors import AuthError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_AUTH_RETRIES = 1


class CredentialCache:
    """Bearer tokens keyed by EVA client_id."""

    def __init__(self, client: EvaClient):
        self.client = client
        self._tokens: Dict[str, str] = {}

    def peek(self, client_id: str) -> Optional[str]:
        return self._tokens.get(client_id)

    async def get_token(self, auth: EvaAuth) -> str:
        """
        Return the cached token for `auth.client_id`, logging in on a miss.

        Raises:
            AuthError: if the login exchange fails
        """
        token = self._tokens.get(auth.client_id)
        if token:
            return token

        logger.info(f"Logging in to EVA for client {auth.client_id}")
        token = await self.client.login(auth)
        self._tokens[auth.client_id] = token
        logger.info(f"Token cached for client {auth.client_id}")
        return token

    def invalidate(self, client_id: str) -> None:
        if self._tokens.pop(client_id, None) is not None:
            logger.info(f"Token invalidated for client {client_id}")

    async def call(self, auth: EvaAuth, operation: Callable[[str], Awaitable[T]]) -> T:
        """
        Run `operation(token)` with a valid token.

        On AuthError the token is invalidated and the operation retried once
        with a freshly fetched token. A second consecutive AuthError
        propagates. Login failures are not retried.
        """
        attempt = 0
        while True:
            token = await self.get_token(auth)
            try:
                return await operation(token)
            except AuthError:
                self.invalidate(auth.client_id)
                if attempt >= MAX_AUTH_RETRIES:
                    raise
                attempt += 1
                logger.warning(f"EVA token rejected for client {auth.client_id}, retrying with a fresh token")
