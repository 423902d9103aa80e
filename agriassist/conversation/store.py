"""Conversation state owned by the caller.

The store holds the ordered message list for one chat session and
notifies listeners on every change, so the stream decoder can update an
assistant reply without knowing anything about rendering.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from agriassist.schemas.chat import ChatMessage, ChatRole

logger = logging.getLogger(__name__)


class ConversationEventType(StrEnum):
    """Kinds of conversation mutations."""

    MESSAGE_ADDED = "message_added"
    MESSAGE_UPDATED = "message_updated"
    MESSAGE_REMOVED = "message_removed"


class ConversationEvent(BaseModel):
    """A single change to the conversation."""

    type: ConversationEventType = Field(description="Event type")
    message: ChatMessage = Field(description="Snapshot of the affected message")
    timestamp: float = Field(
        default_factory=time.time,
        description="Unix timestamp when the change happened",
    )


ConversationListener = Callable[[ConversationEvent], Any]


class ConversationStore:
    """Ordered chat messages plus change listeners.

    Messages handed out are copies; the store is the only writer.
    Listeners are plain callables invoked synchronously on each change;
    their exceptions are logged but never propagate.
    """

    def __init__(self, greeting: str | None = None) -> None:
        self._messages: list[ChatMessage] = []
        self._listeners: list[ConversationListener] = []
        if greeting:
            self._messages.append(
                ChatMessage(role=ChatRole.ASSISTANT, content=greeting)
            )

    @property
    def messages(self) -> list[ChatMessage]:
        """Snapshot of all messages in order."""
        return [m.model_copy() for m in self._messages]

    def __len__(self) -> int:
        return len(self._messages)

    def get(self, message_id: str) -> ChatMessage:
        """Return a copy of the message with the given id.

        Raises:
            KeyError: If no message has that id.
        """
        return self._find(message_id).model_copy()

    def history(self) -> list[dict[str, str]]:
        """Role/content pairs for every message, oldest first."""
        return [m.to_history() for m in self._messages]

    # ── Listeners ─────────────────────────────────────────────

    def add_listener(self, listener: ConversationListener) -> None:
        """Register a callback for conversation events.

        Raises:
            TypeError: If the listener is a coroutine function. Mutations
                are synchronous, so nothing would await it.
        """
        if inspect.iscoroutinefunction(listener):
            raise TypeError("Conversation listeners must be synchronous callables")
        self._listeners.append(listener)

    def remove_listener(self, listener: ConversationListener) -> None:
        """Remove a previously registered callback."""
        self._listeners = [ln for ln in self._listeners if ln != listener]

    # ── Mutations ─────────────────────────────────────────────

    def add_user(self, content: str) -> ChatMessage:
        """Append a user turn."""
        return self._add(ChatMessage(role=ChatRole.USER, content=content))

    def begin_assistant(self) -> ChatMessage:
        """Append an empty assistant reply that deltas will grow."""
        return self._add(ChatMessage(role=ChatRole.ASSISTANT))

    def append_delta(self, message_id: str, delta: str) -> ChatMessage:
        """Append streamed text to an existing message.

        Raises:
            KeyError: If no message has that id.
        """
        message = self._find(message_id)
        message.content += delta
        self._notify(ConversationEventType.MESSAGE_UPDATED, message)
        return message.model_copy()

    def add_fallback(self, content: str) -> ChatMessage:
        """Append the synthetic assistant reply shown when a request fails."""
        return self._add(
            ChatMessage(role=ChatRole.ASSISTANT, content=content, is_fallback=True)
        )

    def discard(self, message_id: str) -> None:
        """Remove a message, typically an assistant reply that never got content.

        Raises:
            KeyError: If no message has that id.
        """
        message = self._find(message_id)
        self._messages.remove(message)
        self._notify(ConversationEventType.MESSAGE_REMOVED, message)

    def _add(self, message: ChatMessage) -> ChatMessage:
        self._messages.append(message)
        self._notify(ConversationEventType.MESSAGE_ADDED, message)
        return message.model_copy()

    def _find(self, message_id: str) -> ChatMessage:
        for message in self._messages:
            if message.id == message_id:
                return message
        raise KeyError(message_id)

    def _notify(self, event_type: ConversationEventType, message: ChatMessage) -> None:
        if not self._listeners:
            return
        event = ConversationEvent(type=event_type, message=message.model_copy())
        for listener in self._listeners:
            try:
                result = listener(event)
                if asyncio.iscoroutine(result):
                    result.close()
                    logger.warning(
                        "Conversation listener returned a coroutine for %s; dropped",
                        event_type,
                    )
            except Exception:
                logger.exception("Conversation listener error for %s", event_type)
