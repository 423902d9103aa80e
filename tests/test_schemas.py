"""Tests for chat and streaming schemas."""

from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from agriassist.schemas import ChatMessage, ChatRole, StreamChunk, StreamState


class TestStreamState:
    @pytest.mark.parametrize(
        ("state", "terminal"),
        [
            (StreamState.IDLE, False),
            (StreamState.STREAMING, False),
            (StreamState.COMPLETED, True),
            (StreamState.ERRORED, True),
        ],
    )
    def test_is_terminal(self, state, terminal):
        assert state.is_terminal is terminal


class TestStreamChunk:
    def test_defaults(self):
        chunk = StreamChunk(message_id="m", delta="a", accumulated="a", delta_count=1)
        assert chunk.is_complete is False

    def test_delta_count_non_negative(self):
        with pytest.raises(ValidationError):
            StreamChunk(message_id="m", delta="", accumulated="", delta_count=-1)


class TestChatMessage:
    def test_defaults(self):
        message = ChatMessage(role=ChatRole.USER, content="hi")
        assert len(message.id) == 32
        assert message.timestamp.utcoffset() == timedelta(0)
        assert message.is_fallback is False

    def test_ids_unique(self):
        ids = {ChatMessage(role=ChatRole.USER).id for _ in range(50)}
        assert len(ids) == 50

    def test_to_history(self):
        message = ChatMessage(role=ChatRole.ASSISTANT, content="Plant legumes.")
        assert message.to_history() == {"role": "assistant", "content": "Plant legumes."}

    def test_rejects_unknown_role(self):
        with pytest.raises(ValidationError):
            ChatMessage(role="system", content="x")
