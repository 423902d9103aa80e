"""Explicitly owned conversation state."""

from agriassist.conversation.store import (
    ConversationEvent,
    ConversationEventType,
    ConversationListener,
    ConversationStore,
)

__all__ = [
    "ConversationEvent",
    "ConversationEventType",
    "ConversationListener",
    "ConversationStore",
]
