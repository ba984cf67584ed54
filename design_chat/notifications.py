"""User-facing notifications raised alongside ``on_error`` callbacks."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import structlog

from design_chat.llm.exceptions import (
    CreditsExhaustedError,
    LLMError,
    NoStreamBodyError,
    RateLimitError,
    RequestRejectedError,
)

RATE_LIMIT_NOTICE = "Rate limit exceeded. Please wait a moment and try again."
CREDITS_EXHAUSTED_NOTICE = "AI credits exhausted. Please add more credits to continue."
STREAM_FAILURE_NOTICE = "Failed to get AI response"

logger = structlog.get_logger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Sink for messages shown to the user (a toast in the web client)."""

    def error(self, message: str) -> None:
        ...


class LogNotifier:
    """Default notifier: emits notifications as structured log records."""

    def error(self, message: str) -> None:
        logger.warning("User notification", notification=message)


class RecordingNotifier:
    """Keeps every notification in memory."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def error(self, message: str) -> None:
        self.messages.append(message)

    def clear(self) -> None:
        self.messages.clear()


def notification_for(error: BaseException) -> str:
    """Pick the notification text for a failed streaming call."""
    if isinstance(error, RateLimitError):
        return RATE_LIMIT_NOTICE
    if isinstance(error, CreditsExhaustedError):
        return CREDITS_EXHAUSTED_NOTICE
    if isinstance(error, NoStreamBodyError):
        return STREAM_FAILURE_NOTICE
    if isinstance(error, RequestRejectedError):
        return error.message
    return STREAM_FAILURE_NOTICE


def callback_message(error: BaseException) -> str:
    """Message passed to ``on_error`` for a failed streaming call."""
    if isinstance(error, LLMError):
        return error.message
    return str(error) or type(error).__name__
