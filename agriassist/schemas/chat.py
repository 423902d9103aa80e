"""Chat message schemas shared by the conversation store and client."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class ChatRole(StrEnum):
    """Who authored a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """One entry in a conversation.

    Assistant messages start empty and grow as stream deltas arrive;
    the id stays stable for the whole life of the message.
    """

    id: str = Field(
        default_factory=lambda: uuid.uuid4().hex,
        description="Stable message identifier",
    )
    role: ChatRole = Field(description="Message author")
    content: str = Field(default="", description="Message text (Markdown)")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the message was created",
    )
    is_fallback: bool = Field(
        default=False,
        description="True for the synthetic reply shown when a request fails",
    )

    def to_history(self) -> dict[str, str]:
        """Role/content pair in the shape posted to the chat endpoint."""
        return {"role": str(self.role), "content": self.content}
