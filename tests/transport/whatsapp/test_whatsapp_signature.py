"""
WhatsApp Signature Verification Tests

Verify Meta HMAC-SHA256 signature validation and the subscription challenge.
"""

import hashlib
import hmac
import json
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from transport.whatsapp.security import (
    compute_signature,
    verify_signature,
    verify_webhook_challenge,
)


class TestSignatureVerification:
    """Test HMAC signature verification."""

    @pytest.mark.asyncio
    async def test_valid_signature(self):
        """Valid signature passes."""
        app_secret = "test_secret"
        payload = json.dumps({"test": "data"}).encode()

        expected_sig = "sha256=" + hmac.new(
            key=app_secret.encode(),
            msg=payload,
            digestmod=hashlib.sha256
        ).hexdigest()

        request = MagicMock()
        request.headers = {"X-Hub-Signature-256": expected_sig}

        # Should not raise
        await verify_signature(request, payload, app_secret=app_secret)
        assert compute_signature(payload, app_secret) == expected_sig

    @pytest.mark.asyncio
    async def test_invalid_signature_returns_403(self):
        """Invalid signature returns 403."""
        request = MagicMock()
        request.headers = {"X-Hub-Signature-256": "sha256=invalid"}

        with pytest.raises(HTTPException) as exc_info:
            await verify_signature(request, b"payload", app_secret="secret")

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_missing_signature_returns_401(self):
        """Missing signature header returns 401."""
        request = MagicMock()
        request.headers = {}

        with pytest.raises(HTTPException) as exc_info:
            await verify_signature(request, b"payload", app_secret="secret")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_tampered_body_returns_403(self):
        request = MagicMock()
        request.headers = {"X-Hub-Signature-256": compute_signature(b"original", "secret")}

        with pytest.raises(HTTPException) as exc_info:
            await verify_signature(request, b"tampered", app_secret="secret")

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_no_app_secret_skips_verification(self):
        """Without WHATSAPP_APP_SECRET every request is accepted."""
        request = MagicMock()
        request.headers = {}

        await verify_signature(request, b"payload", app_secret="")


class TestWebhookChallenge:
    """Test subscription challenge."""

    def test_valid_challenge_echoed(self):
        assert verify_webhook_challenge("subscribe", "12345", "verify-me", expected_token="verify-me") == "12345"

    def test_wrong_token_returns_403(self):
        with pytest.raises(HTTPException) as exc_info:
            verify_webhook_challenge("subscribe", "12345", "wrong", expected_token="verify-me")

        assert exc_info.value.status_code == 403

    def test_wrong_mode_returns_403(self):
        with pytest.raises(HTTPException) as exc_info:
            verify_webhook_challenge("unsubscribe", "12345", "verify-me", expected_token="verify-me")

        assert exc_info.value.status_code == 403

    @pytest.mark.parametrize("mode,token", [(None, "verify-me"), ("subscribe", None)])
    def test_missing_parameters_return_403(self, mode, token):
        with pytest.raises(HTTPException) as exc_info:
            verify_webhook_challenge(mode, "12345", token, expected_token="verify-me")

        assert exc_info.value.status_code == 403

    def test_unconfigured_token_rejects_everything(self):
        with pytest.raises(HTTPException):
            verify_webhook_challenge("subscribe", "12345", "", expected_token="")
