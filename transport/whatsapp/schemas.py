"""
WhatsApp Transport Layer - Pydantic Schemas

PURE DATA MODELS - NO LOGIC
Only defines the contract between WhatsApp and the normalized interface.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field


# ============================================================================
# NORMALIZED MESSAGE (THE CONTRACT)
# ============================================================================

MessageKind = Literal["text", "audio"]


class InboundMessage(BaseModel):
    """
    Canonical inbound message the orchestrator consumes.

    Only text and audio exist here; every other WhatsApp type is rejected
    during normalization.
    """

    phone_number_id: str = Field(..., description="Business number the message arrived on")
    reply_to: str = Field(..., description="Sender phone number; replies go here")
    message_id: str = Field("", description="WhatsApp message ID (wamid)")
    kind: MessageKind = Field(..., description="Content modality")
    text_body: Optional[str] = Field(None, description="Message text. None for audio.")
    audio_id: Optional[str] = Field(None, description="Provider media ID. None for text.")

    class Config:
        """Pydantic config."""
        frozen = True  # Immutable - transport shouldn't mutate

    @property
    def conversation_key(self) -> str:
        """One session per sender per business number."""
        return f"{self.phone_number_id}-{self.reply_to}"


# ============================================================================
# WHATSAPP WEBHOOK PAYLOAD SCHEMAS (INPUT)
# ============================================================================

class MessageObject(BaseModel):
    """A single WhatsApp message."""
    from_: str = Field(..., alias="from")
    id: str = ""
    timestamp: Optional[str] = None
    type: str

    text: Optional[dict] = None
    audio: Optional[dict] = None

    class Config:
        populate_by_name = True
        extra = "allow"


class WhatsAppWebhookPayload(BaseModel):
    """
    Full WhatsApp webhook payload.

    ref: https://developers.facebook.com/docs/whatsapp/cloud-api/webhooks/payload-example
    """

    object: str = Field(..., description="Always 'whatsapp_business_account'")
    entry: list[dict] = Field(..., description="Webhook entries")

    class Config:
        extra = "allow"  # WhatsApp may add fields


# ============================================================================
# WHATSAPP API RESPONSE (OUTPUT)
# ============================================================================

class WhatsAppMessageResponse(BaseModel):
    """Response from WhatsApp Cloud API when sending a message."""

    messaging_product: str = Field(default="whatsapp")
    contacts: list[dict] = Field(default_factory=list)
    messages: list[dict] = Field(default_factory=list)

    class Config:
        extra = "allow"

    @property
    def message_id(self) -> Optional[str]:
        return self.messages[0].get("id") if self.messages else None
