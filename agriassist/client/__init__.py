"""HTTP client for the streaming chat endpoint."""

from agriassist.client.chat import ChatClient, ChunkSink, SendResult

__all__ = ["ChatClient", "ChunkSink", "SendResult"]
