"""
WhatsApp Webhook Security

SECURITY BOUNDARY - subscription challenge and Meta HMAC signature.
No retries. No logic.
"""

import hashlib
import hmac
from typing import Optional

from fastapi import HTTPException, Request, status

from config import Config


def compute_signature(body: bytes, app_secret: str) -> str:
    """Value Meta puts in X-Hub-Signature-256 for `body`."""
    return "sha256=" + hmac.new(
        key=app_secret.encode("utf-8"),
        msg=body,
        digestmod=hashlib.sha256,
    ).hexdigest()


async def verify_signature(
    request: Request,
    body: bytes,
    app_secret: Optional[str] = None,
) -> None:
    """
    Verify Meta HMAC-SHA256 signature on a WhatsApp webhook.

    Verification is enforced only when an app secret is configured
    (WHATSAPP_APP_SECRET); without one every request is accepted.

    Raises:
        HTTPException(401): Missing signature
        HTTPException(403): Invalid signature
    """

    app_secret = app_secret if app_secret is not None else Config.WHATSAPP_APP_SECRET
    if not app_secret:
        return

    signature = request.headers.get("X-Hub-Signature-256")
    if not signature:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Hub-Signature-256 header"
        )

    # Compare (constant-time to prevent timing attacks)
    if not hmac.compare_digest(signature, compute_signature(body, app_secret)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid signature"
        )


def verify_webhook_challenge(
    hub_mode: Optional[str],
    hub_challenge: Optional[str],
    hub_verify_token: Optional[str],
    expected_token: Optional[str] = None,
) -> str:
    """
    Verify webhook subscription challenge from WhatsApp.

    WhatsApp calls GET /webhook with:
    - hub.mode=subscribe
    - hub.challenge=random_string
    - hub.verify_token=configured_token

    Returns:
        The challenge string to echo back

    Raises:
        HTTPException(403): Missing parameters, wrong mode or wrong token
    """

    expected_token = expected_token if expected_token is not None else Config.WHATSAPP_VERIFY_TOKEN

    if not hub_mode or not hub_verify_token:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Missing hub.mode or hub.verify_token"
        )

    if hub_mode != "subscribe" or not expected_token or not hmac.compare_digest(
        hub_verify_token, expected_token
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid hub.verify_token"
        )

    return hub_challenge or ""
