"""
Credential Cache Tests

Token caching, reactive invalidation and the single retry on expiry.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from eva.credentials import CredentialCache
from eva.errors import AuthError, UpstreamApiError
from infra.bot_config import EvaAuth

AUTH = EvaAuth(client_id="client-1", password="secret", host="https://eva.test")


@pytest.fixture
def eva_client():
    client = MagicMock()
    client.login = AsyncMock(side_effect=["token-1", "token-2", "token-3"])
    return client


@pytest.fixture
def cache(eva_client):
    return CredentialCache(eva_client)


class TestGetToken:
    """Lazy login and caching."""

    @pytest.mark.asyncio
    async def test_login_on_miss(self, cache, eva_client):
        assert await cache.get_token(AUTH) == "token-1"
        eva_client.login.assert_awaited_once_with(AUTH)

    @pytest.mark.asyncio
    async def test_cached_token_reused(self, cache, eva_client):
        """Second lookup does not log in again."""
        await cache.get_token(AUTH)
        assert await cache.get_token(AUTH) == "token-1"
        assert eva_client.login.await_count == 1

    @pytest.mark.asyncio
    async def test_tokens_are_per_client(self, cache, eva_client):
        other = EvaAuth(client_id="client-2", password="x", host="https://eva.test")
        await cache.get_token(AUTH)
        await cache.get_token(other)

        assert cache.peek("client-1") == "token-1"
        assert cache.peek("client-2") == "token-2"

    @pytest.mark.asyncio
    async def test_invalidate_forces_login(self, cache, eva_client):
        await cache.get_token(AUTH)
        cache.invalidate("client-1")

        assert cache.peek("client-1") is None
        assert await cache.get_token(AUTH) == "token-2"

    @pytest.mark.asyncio
    async def test_login_failure_propagates(self, eva_client):
        eva_client.login = AsyncMock(side_effect=AuthError("bad credentials"))
        cache = CredentialCache(eva_client)

        with pytest.raises(AuthError):
            await cache.get_token(AUTH)
        assert cache.peek("client-1") is None


class TestCall:
    """Bounded retry around an authenticated operation."""

    @pytest.mark.asyncio
    async def test_success_uses_cached_token(self, cache):
        operation = AsyncMock(return_value="ok")

        assert await cache.call(AUTH, operation) == "ok"
        operation.assert_awaited_once_with("token-1")

    @pytest.mark.asyncio
    async def test_retries_once_with_fresh_token(self, cache, eva_client):
        """First AuthError invalidates and retries with a new token."""
        operation = AsyncMock(side_effect=[AuthError("expired"), "ok"])

        assert await cache.call(AUTH, operation) == "ok"
        assert [c.args[0] for c in operation.await_args_list] == ["token-1", "token-2"]
        assert cache.peek("client-1") == "token-2"

    @pytest.mark.asyncio
    async def test_second_auth_error_propagates(self, cache, eva_client):
        """Two consecutive AuthErrors: exactly one retry, then raise."""
        operation = AsyncMock(side_effect=AuthError("expired"))

        with pytest.raises(AuthError):
            await cache.call(AUTH, operation)

        assert operation.await_count == 2
        assert eva_client.login.await_count == 2
        assert cache.peek("client-1") is None

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self, cache):
        operation = AsyncMock(side_effect=UpstreamApiError("boom", status_code=500))

        with pytest.raises(UpstreamApiError):
            await cache.call(AUTH, operation)

        assert operation.await_count == 1
        assert cache.peek("client-1") == "token-1"

    @pytest.mark.asyncio
    async def test_login_failure_during_retry_propagates(self, eva_client):
        eva_client.login = AsyncMock(side_effect=["token-1", AuthError("login down")])
        cache = CredentialCache(eva_client)
        operation = AsyncMock(side_effect=AuthError("expired"))

        with pytest.raises(AuthError, match="login down"):
            await cache.call(AUTH, operation)
        assert operation.await_count == 1
