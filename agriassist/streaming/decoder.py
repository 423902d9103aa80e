"""Incremental decoder for streamed chat completions.

The chat endpoint answers with a body of newline-delimited records:
``:`` comments, blank keep-alive lines, and ``data: `` lines carrying
either the ``[DONE]`` sentinel or a JSON object shaped like
``{"choices": [{"delta": {"content": "..."}}]}``. Chunks arrive at
arbitrary byte boundaries, so the decoder keeps a text buffer plus a
cursor marking the start of the next unconsumed line.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

from agriassist.schemas.streaming import StreamState

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
COMMENT_PREFIX = ":"
DONE_SENTINEL = "[DONE]"


def extract_delta(record: Any) -> str | None:
    """Return ``choices[0].delta.content`` from a parsed record, if any.

    Records missing any level of the path, or carrying a non-string
    content, yield None.
    """
    if not isinstance(record, dict):
        return None
    choices = record.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    return content if isinstance(content, str) else None


class ChatStreamDecoder:
    """Turns raw response chunks into ordered text deltas.

    State machine: IDLE -> STREAMING -> (COMPLETED | ERRORED). The first
    ``feed`` starts streaming; ``[DONE]`` or ``close()`` completes it;
    ``fail()`` errors it. Terminal states ignore further input.

    A ``data:`` line whose payload does not parse as JSON is left at the
    front of the buffer and scanning stops until the next chunk arrives.
    Only newline-terminated lines are ever processed; whatever is still
    pending when the stream closes is dropped.
    """

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer: str = ""
        self._cursor: int = 0
        self._state = StreamState.IDLE
        self._delta_count: int = 0

    @property
    def state(self) -> StreamState:
        """Current lifecycle state."""
        return self._state

    @property
    def delta_count(self) -> int:
        """Number of deltas emitted so far."""
        return self._delta_count

    @property
    def pending(self) -> str:
        """Buffered text not yet resolved into a record."""
        return self._buffer[self._cursor:]

    def feed(self, chunk: bytes | str) -> list[str]:
        """Consume one chunk and return the deltas it completes, in order."""
        if self._state.is_terminal:
            return []
        self._state = StreamState.STREAMING
        if not chunk:
            return []

        if isinstance(chunk, str):
            # Text goes through the byte decoder too, so bytes held back
            # from an earlier chunk are resolved in order.
            chunk = chunk.encode("utf-8")
        text = self._utf8.decode(chunk)
        # Compact consumed lines once per chunk instead of once per line.
        self._buffer = self._buffer[self._cursor:] + text
        self._cursor = 0

        deltas: list[str] = []
        while True:
            newline = self._buffer.find("\n", self._cursor)
            if newline == -1:
                break

            line_start = self._cursor
            line = self._buffer[line_start:newline]
            self._cursor = newline + 1
            if line.endswith("\r"):
                line = line[:-1]

            if not line.strip() or line.startswith(COMMENT_PREFIX):
                continue
            if not line.startswith(DATA_PREFIX):
                continue

            payload = line[len(DATA_PREFIX):].strip()
            if payload == DONE_SENTINEL:
                logger.debug("Stream finished after %d deltas", self._delta_count)
                self._finish(StreamState.COMPLETED)
                break

            try:
                record = json.loads(payload)
            except ValueError:
                logger.debug("Deferring unparseable record: %.80s", payload)
                self._cursor = line_start
                break

            delta = extract_delta(record)
            if delta:
                self._delta_count += 1
                deltas.append(delta)
            else:
                logger.debug("Record without delta content ignored")

        return deltas

    def close(self) -> None:
        """Signal end of body. Dangling partial lines are discarded."""
        if self._state.is_terminal:
            return
        if self.pending:
            logger.debug("Dropping %d unterminated characters at close", len(self.pending))
        self._finish(StreamState.COMPLETED)

    def fail(self) -> None:
        """Abort the stream; no further chunks are processed."""
        if self._state.is_terminal:
            return
        self._finish(StreamState.ERRORED)

    def _finish(self, state: StreamState) -> None:
        self._state = state
        self._buffer = ""
        self._cursor = 0
        self._utf8.reset()


async def iter_deltas(
    chunks: AsyncIterable[bytes],
    decoder: ChatStreamDecoder | None = None,
) -> AsyncIterator[str]:
    """Lazily yield deltas decoded from an async stream of byte chunks.

    Stops reading as soon as the sentinel is seen. Closes the decoder when
    the body ends and marks it errored if the chunk source raises.
    """
    decoder = decoder or ChatStreamDecoder()
    try:
        async for chunk in chunks:
            for delta in decoder.feed(chunk):
                yield delta
            if decoder.state.is_terminal:
                break
    except Exception:
        decoder.fail()
        raise
    decoder.close()
