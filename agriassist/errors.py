"""Exception types raised by AgriAssist."""

from __future__ import annotations


class AgriAssistError(Exception):
    """Base class for all AgriAssist errors."""


class ConfigError(AgriAssistError, ValueError):
    """Configuration file or environment values are invalid."""


class ChatTransportError(AgriAssistError, RuntimeError):
    """The chat endpoint could not deliver a streamed response.

    Raised for network failures, timeouts, non-success status codes and
    responses without a body. Never retried.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
