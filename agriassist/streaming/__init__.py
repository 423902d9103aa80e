"""Stream decoding for chat completion responses."""

from agriassist.streaming.decoder import (
    ChatStreamDecoder,
    extract_delta,
    iter_deltas,
)

__all__ = ["ChatStreamDecoder", "extract_delta", "iter_deltas"]
