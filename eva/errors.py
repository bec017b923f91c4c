"""
Bridge error taxonomy.

Every failure that crosses a component boundary is one of these types.
Classification of upstream HTTP failures happens once, in the client that
made the call, so callers branch on types and never on response bodies.
"""

from typing import Optional


class BridgeError(Exception):
    """Base class for all bridge errors."""
    pass


class AuthError(BridgeError):
    """Login failed, or upstream rejected the bearer token as expired/unauthorized."""
    pass


class UpstreamApiError(BridgeError):
    """Non-auth failure from the conversational or speech API."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class MediaFetchError(BridgeError):
    """A provider media reference could not be resolved or downloaded."""
    pass


class TranscriptionError(BridgeError):
    """The speech-to-text endpoint failed."""
    pass


class ValidationError(BridgeError):
    """Malformed or unsupported inbound payload. Dropped, never retried."""
    pass


class DeliveryError(BridgeError):
    """Outbound send through the messaging provider failed."""
    pass


class BotConfigError(BridgeError):
    """Per-tenant bot configuration could not be loaded."""
    pass
