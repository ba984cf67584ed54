"""Streaming chat client for the AI interior-design assistant."""

from __future__ import annotations

from .llm.client import StreamingChatClient
from .llm.models import ChatMessage, MessageRole, StreamOutcome

__all__ = [
    "ChatMessage",
    "MessageRole",
    "StreamOutcome",
    "StreamingChatClient",
]
