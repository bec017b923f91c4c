"""WhatsApp Transport Layer - Module Exports"""

from .filters import is_allowed
from .media import WhatsAppMediaClient
from .normalize import (
    NormalizationError,
    extract_routing,
    is_valid_message,
    normalize_message,
)
from .schemas import (
    InboundMessage,
    MessageObject,
    WhatsAppMessageResponse,
    WhatsAppWebhookPayload,
)
from .security import compute_signature, verify_signature, verify_webhook_challenge
from .sender import WhatsAppSender

__all__ = [
    # Schemas
    "InboundMessage",
    "WhatsAppWebhookPayload",
    "MessageObject",
    "WhatsAppMessageResponse",
    # Normalization
    "normalize_message",
    "extract_routing",
    "is_valid_message",
    "NormalizationError",
    # Filtering
    "is_allowed",
    # Security
    "compute_signature",
    "verify_signature",
    "verify_webhook_challenge",
    # Graph API clients
    "WhatsAppMediaClient",
    "WhatsAppSender",
]
