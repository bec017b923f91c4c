"""
WhatsApp Webhook Receiver

FastAPI router for the Meta subscription challenge and inbound events.

Inbound flow:
1. Verify signature (when an app secret is configured)
2. Drop anything that is not a message (status callbacks, junk)
3. Resolve the tenant's bot config by phone_number_id
4. Apply the sender allow/deny lists
5. Process inline in a background task, or enqueue

WhatsApp only needs a fast 200; replies are sent later through the Graph API.
Returning 500 makes WhatsApp redeliver, so that is reserved for failures
a retry can fix (config lookup, enqueue).
"""

import asyncio
import json
import logging
import time
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse

from conversation.orchestrator import ConversationOrchestrator
from eva.errors import BotConfigError
from infra.bootstrap import InfraBootstrap, get_bootstrap
from infra.bot_config import BotConfig
from workqueue import QueueEnvelope, deduplication_id, group_id

from .filters import is_allowed
from .normalize import NormalizationError, extract_routing, is_valid_message
from .security import verify_signature, verify_webhook_challenge

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["WhatsApp Transport"])


# ============================================================================
# WEBHOOK CHALLENGE (Setup only)
# ============================================================================

@router.get("", response_class=PlainTextResponse)
async def whatsapp_webhook_challenge(
    hub_mode: Optional[str] = Query(None, alias="hub.mode"),
    hub_challenge: Optional[str] = Query(None, alias="hub.challenge"),
    hub_verify_token: Optional[str] = Query(None, alias="hub.verify_token"),
) -> str:
    """
    Verify webhook subscription challenge from Meta.

    Returns:
        The challenge string (plain text)

    Raises:
        HTTPException(403): Missing parameters or wrong token
    """
    challenge = verify_webhook_challenge(hub_mode, hub_challenge, hub_verify_token)
    logger.info("WEBHOOK_VERIFIED")
    return challenge


# ============================================================================
# WEBHOOK RECEIVER (Message processing)
# ============================================================================

async def process_inline(
    orchestrator: ConversationOrchestrator,
    event: dict,
    config: BotConfig,
    timeout_seconds: float,
) -> None:
    """Background task for inline ingress."""
    try:
        await asyncio.wait_for(orchestrator.process_event(event, config), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        logger.error(f"Timeout error: event processing exceeded {timeout_seconds}s")
    except Exception as e:
        logger.error(f"Unexpected error processing event: {e}", exc_info=True)


@router.post("")
async def whatsapp_webhook_receiver(
    request: Request,
    background_tasks: BackgroundTasks,
    bootstrap: InfraBootstrap = Depends(get_bootstrap),
) -> dict[str, str]:
    """
    Receive WhatsApp events via webhook.

    Returns:
        {"status": "queued" | "accepted" | "ignored"}

    Raises:
        HTTPException(401): Missing signature
        HTTPException(403): Invalid signature
        HTTPException(500): Bot config lookup or enqueue failed
    """

    body = await request.body()
    await verify_signature(request, body)

    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Ignoring webhook with invalid JSON payload")
        return {"status": "ignored"}

    if not is_valid_message(payload):
        logger.debug("Ignoring webhook without messages")
        return {"status": "ignored"}

    try:
        phone_number_id, sender = extract_routing(payload)
    except NormalizationError as e:
        logger.warning(f"Ignoring webhook: {e}")
        return {"status": "ignored"}

    try:
        config = await bootstrap.bot_configs.get(phone_number_id)
    except BotConfigError as e:
        logger.error(f"Bot config lookup failed for {phone_number_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Bot config lookup failed"
        )

    if config is None:
        logger.warning(f"No bot config for phone_number_id {phone_number_id}")
        return {"status": "ignored"}

    if not is_allowed(sender, config.whatsapp):
        logger.info(f"Sender {sender} filtered for {phone_number_id}")
        return {"status": "ignored"}

    queue = bootstrap.queue_for(config)
    if queue is None:
        background_tasks.add_task(
            process_inline,
            bootstrap.orchestrator,
            payload,
            config,
            bootstrap.config.processing_timeout_seconds,
        )
        return {"status": "accepted"}

    envelope = QueueEnvelope(event=payload, bot_config=config)
    try:
        message_id = await queue.send(
            envelope,
            group_id=group_id(phone_number_id, sender),
            deduplication_id=deduplication_id(phone_number_id, sender, int(time.time() * 1000)),
        )
    except Exception as e:
        logger.error(f"Failed to enqueue event from {sender}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to enqueue event"
        )

    logger.info(
        f"Event queued",
        extra={"conversation_key": group_id(phone_number_id, sender), "message_id": message_id},
    )
    return {"status": "queued"}
