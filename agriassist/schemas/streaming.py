"""Streaming schemas for real-time reply delivery.

Defines the StreamChunk model passed to display sinks while a reply is
being decoded, and the StreamState lifecycle of a single chat stream.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class StreamState(StrEnum):
    """Lifecycle of one streamed chat response."""

    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        """True once no further chunks will be processed."""
        return self in (StreamState.COMPLETED, StreamState.ERRORED)


class StreamChunk(BaseModel):
    """A single increment of assistant output."""

    message_id: str = Field(description="Id of the assistant message being built")
    delta: str = Field(description="New text in this chunk")
    accumulated: str = Field(description="Full text accumulated so far")
    delta_count: int = Field(ge=0, description="Running count of deltas received")
    is_complete: bool = Field(
        default=False, description="True on final chunk"
    )
