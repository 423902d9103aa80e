"""Chat client that streams assistant replies into a ConversationStore.

One ``send`` call appends the user's turn, posts the whole conversation
to the chat endpoint, and decodes the streamed body into a fresh
assistant message. Every failure ends as a single fallback reply in the
conversation; nothing is retried here.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from pydantic import BaseModel, Field

from agriassist.config import ChatConfig
from agriassist.conversation.store import ConversationStore
from agriassist.errors import ChatTransportError
from agriassist.schemas.chat import ChatMessage
from agriassist.schemas.streaming import StreamChunk, StreamState
from agriassist.streaming.decoder import ChatStreamDecoder, iter_deltas

logger = logging.getLogger(__name__)

# Type alias for display sinks (sync or async)
ChunkSink = Callable[[StreamChunk], Any]


class SendResult(BaseModel):
    """Outcome of one send operation."""

    user_message: ChatMessage = Field(description="The user's turn as stored")
    reply: ChatMessage = Field(
        description="The assistant reply, or the fallback on failure"
    )
    state: StreamState = Field(description="Terminal state of the stream")
    delta_count: int = Field(ge=0, description="Deltas received before the stream ended")

    @property
    def failed(self) -> bool:
        return self.state is StreamState.ERRORED


class ChatClient:
    """Sends conversations to the streaming chat endpoint.

    Pass an ``httpx.AsyncClient`` to reuse connections across sends; it is
    left open. Without one, a client is created and closed per send.
    """

    def __init__(
        self,
        config: ChatConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._http_client = http_client

    @property
    def config(self) -> ChatConfig:
        return self._config

    async def send(
        self,
        store: ConversationStore,
        text: str,
        *,
        on_chunk: ChunkSink | None = None,
    ) -> SendResult | None:
        """Send one user turn and stream the reply into ``store``.

        Args:
            store: Conversation to read history from and write replies to.
            text: The user's message. Blank text is ignored.
            on_chunk: Optional callback invoked with each StreamChunk and a
                final ``is_complete`` chunk.

        Returns:
            SendResult for the turn, or None when ``text`` is blank.
        """
        if not text.strip():
            return None

        user_message = store.add_user(text)
        decoder = ChatStreamDecoder()
        reply: ChatMessage | None = None

        try:
            async with self._open_stream(store.history()) as response:
                reply = store.begin_assistant()
                async for delta in iter_deltas(response.aiter_bytes(), decoder):
                    reply = store.append_delta(reply.id, delta)
                    await _deliver(
                        on_chunk,
                        StreamChunk(
                            message_id=reply.id,
                            delta=delta,
                            accumulated=reply.content,
                            delta_count=decoder.delta_count,
                        ),
                    )
                await _deliver(
                    on_chunk,
                    StreamChunk(
                        message_id=reply.id,
                        delta="",
                        accumulated=reply.content,
                        delta_count=decoder.delta_count,
                        is_complete=True,
                    ),
                )
        except Exception as e:
            decoder.fail()
            logger.warning(
                "Chat request to %s failed (%s): %s",
                self._config.endpoint, type(e).__name__, e,
            )
            _discard_if_empty(store, reply)
            fallback = store.add_fallback(self._config.fallback_message)
            return SendResult(
                user_message=user_message,
                reply=fallback,
                state=StreamState.ERRORED,
                delta_count=decoder.delta_count,
            )
        except BaseException:
            # Cancelled or interrupted: no fallback, but no empty reply either.
            decoder.fail()
            _discard_if_empty(store, reply)
            raise

        logger.debug("Reply %s finished with %d deltas", reply.id, decoder.delta_count)
        return SendResult(
            user_message=user_message,
            reply=reply,
            state=decoder.state,
            delta_count=decoder.delta_count,
        )

    @asynccontextmanager
    async def _open_stream(
        self, history: list[dict[str, str]]
    ) -> AsyncIterator[httpx.Response]:
        """POST the conversation and yield the streaming response.

        Raises:
            ChatTransportError: On network failure, non-2xx status, or an
                empty (204) response.
        """
        async with AsyncExitStack() as stack:
            client = self._http_client
            if client is None:
                client = await stack.enter_async_context(
                    httpx.AsyncClient(timeout=self._config.timeout)
                )

            try:
                response = await stack.enter_async_context(
                    client.stream(
                        "POST",
                        self._config.endpoint,
                        json={"messages": history},
                        headers=self._headers(),
                        timeout=self._config.timeout,
                    )
                )
            except httpx.HTTPError as e:
                raise ChatTransportError(f"Could not reach chat endpoint: {e}") from e

            if not response.is_success:
                raise ChatTransportError(
                    f"Chat endpoint returned HTTP {response.status_code}",
                    status_code=response.status_code,
                )
            if response.status_code == httpx.codes.NO_CONTENT:
                raise ChatTransportError(
                    "Chat endpoint returned no body",
                    status_code=response.status_code,
                )

            yield response

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"
            headers["apikey"] = self._config.api_key
        return headers


async def _deliver(on_chunk: ChunkSink | None, chunk: StreamChunk) -> None:
    if on_chunk is None:
        return
    result = on_chunk(chunk)
    if asyncio.iscoroutine(result):
        await result


def _discard_if_empty(store: ConversationStore, reply: ChatMessage | None) -> None:
    if reply is not None and not store.get(reply.id).content:
        store.discard(reply.id)
