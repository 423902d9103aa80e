"""Pydantic schemas for AgriAssist."""

from agriassist.schemas.chat import ChatMessage, ChatRole
from agriassist.schemas.streaming import StreamChunk, StreamState

__all__ = [
    "ChatMessage",
    "ChatRole",
    "StreamChunk",
    "StreamState",
]
