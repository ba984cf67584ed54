"""
Chat completion streaming for the design assistant.

This package provides:
- Type-safe message and endpoint models
- An error taxonomy for rejected and failed streams
- An incremental SSE parser robust to arbitrary chunk boundaries
- The streaming chat client (``design_chat.llm.client``)
"""

from __future__ import annotations

from .exceptions import (
    CreditsExhaustedError,
    LLMError,
    NoStreamBodyError,
    RateLimitError,
    RequestRejectedError,
    ServiceError,
    TransportError,
)
from .models import ChatMessage, EndpointConfig, MessageRole, StreamOutcome

__all__ = [
    "ChatMessage",
    "CreditsExhaustedError",
    "EndpointConfig",
    # Exceptions
    "LLMError",
    "MessageRole",
    "NoStreamBodyError",
    "RateLimitError",
    "RequestRejectedError",
    "ServiceError",
    "StreamOutcome",
    "TransportError",
]
