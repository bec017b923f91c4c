"""EVA API - error taxonomy and wire schemas."""

from .errors import (
    AuthError,
    BotConfigError,
    BridgeError,
    DeliveryError,
    MediaFetchError,
    TranscriptionError,
    UpstreamApiError,
    ValidationError,
)
from .schemas import AskRequest, AskResponse, Template

__all__ = [
    "BridgeError",
    "AuthError",
    "UpstreamApiError",
    "MediaFetchError",
    "TranscriptionError",
    "ValidationError",
    "DeliveryError",
    "BotConfigError",
    "AskRequest",
    "AskResponse",
    "Template",
]
