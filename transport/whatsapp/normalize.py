"""
WhatsApp Input Normalization

PURE CONVERSION - NO LOGIC, NO NETWORK CALLS

Converts WhatsApp webhook payloads into the canonical InboundMessage.
- TEXT: Extract body, trim, no enrichment
- AUDIO: Preserve the media ID only; transcription happens downstream
- Anything else: NormalizationError
"""

from typing import Any, Optional, Tuple

from eva.errors import ValidationError

from .schemas import InboundMessage, MessageObject, WhatsAppWebhookPayload


class NormalizationError(ValidationError):
    """Input normalization failed."""
    pass


def _first_value(payload: Any) -> Optional[dict]:
    try:
        return payload["entry"][0]["changes"][0]["value"]
    except (KeyError, IndexError, TypeError):
        return None


def is_valid_message(payload: Any) -> bool:
    """
    Shape check used by the webhook before any lookup.

    True when the payload has an `object` and at least one message.
    Status callbacks (delivered/read) have no messages and fail this check.
    """
    if not isinstance(payload, dict) or not payload.get("object"):
        return False
    value = _first_value(payload)
    if not isinstance(value, dict):
        return False
    messages = value.get("messages")
    return bool(messages) and isinstance(messages, list)


def extract_routing(payload: dict) -> Tuple[str, str]:
    """
    Extract (phone_number_id, sender) from payload.

    Useful for routing/filtering without full normalization.
    """
    try:
        value = payload["entry"][0]["changes"][0]["value"]
        return str(value["metadata"]["phone_number_id"]), str(value["messages"][0]["from"])
    except (KeyError, IndexError, TypeError):
        raise NormalizationError("Cannot extract phone_number_id/sender from payload")


def normalize_message(payload: dict | WhatsAppWebhookPayload) -> InboundMessage:
    """
    Convert WhatsApp webhook message into InboundMessage.

    Args:
        payload: Raw WhatsApp webhook payload

    Returns:
        InboundMessage ready for the orchestrator

    Raises:
        NormalizationError: Invalid or unsupported message
    """

    if isinstance(payload, WhatsAppWebhookPayload):
        payload = payload.model_dump(by_alias=True)

    if not is_valid_message(payload):
        raise NormalizationError("No messages in payload")

    phone_number_id, _ = extract_routing(payload)

    try:
        message = MessageObject.model_validate(_first_value(payload)["messages"][0])
    except Exception as e:
        raise NormalizationError(f"Invalid payload structure: {e}")

    if message.type == "text":
        return _normalize_text_message(message, phone_number_id)

    elif message.type == "audio":
        return _normalize_audio_message(message, phone_number_id)

    else:
        raise NormalizationError(f"Unsupported message type: {message.type}")


def _normalize_text_message(message: MessageObject, phone_number_id: str) -> InboundMessage:
    """
    Normalize text message.

    Rules:
    - Extract message body
    - Trim whitespace
    - No enrichment or corrections
    """

    body = (message.text or {}).get("body")
    if body is None:
        raise NormalizationError("Text message missing 'text.body'")

    return InboundMessage(
        phone_number_id=phone_number_id,
        reply_to=message.from_,
        message_id=message.id,
        kind="text",
        text_body=str(body).strip(),
    )


def _normalize_audio_message(message: MessageObject, phone_number_id: str) -> InboundMessage:
    """Normalize audio message. The media ID is kept; no download here."""

    audio_id = (message.audio or {}).get("id")
    if not audio_id:
        raise NormalizationError("Audio message missing ID")

    return InboundMessage(
        phone_number_id=phone_number_id,
        reply_to=message.from_,
        message_id=message.id,
        kind="audio",
        audio_id=audio_id,
    )
