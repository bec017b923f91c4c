"""
EVA API - Pydantic Schemas

Wire contract for the conversational API (`/api/ai/ask`).
Python field names are snake_case; aliases carry the wire names.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Template(str, Enum):
    """Prompt-shaping mode selected by the conversational API."""

    GREETING = "template_saudacao"
    CONTEXT = "template_contexto"


class AskRequest(BaseModel):
    """Body of POST /api/ai/ask."""

    query: str
    memory: str = "{}"
    search_docs: bool = Field(True, alias="searchdocs")
    temperature: float = 0.2
    template: Template
    session_id: Optional[str] = Field(None, alias="sessionid")
    client_id: str
    username: str
    email: bool = False
    zendesk: bool = False
    cl: str = "1"
    engine: str = "azure"

    class Config:
        populate_by_name = True
        frozen = True

    def to_wire(self) -> dict:
        """Serialize with wire names; an absent session id is omitted."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class AskResponse(BaseModel):
    """Response of POST /api/ai/ask."""

    message: str = ""
    session_id: Optional[str] = Field(None, alias="sessionid")

    class Config:
        populate_by_name = True
        extra = "allow"
