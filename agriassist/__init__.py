"""AgriAssist: streaming AI chat assistant for farmers."""

__version__ = "0.1.0"

from agriassist.client import ChatClient, SendResult
from agriassist.conversation import ConversationStore
from agriassist.streaming import ChatStreamDecoder, iter_deltas

__all__ = [
    "ChatClient",
    "ChatStreamDecoder",
    "ConversationStore",
    "SendResult",
    "iter_deltas",
]
