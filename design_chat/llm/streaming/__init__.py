"""
Incremental SSE parsing for chat completion streams.
"""

from __future__ import annotations

from .models import IgnoreReason, ParserState, ProtocolEvent, SSEEventType
from .parser import SSEStreamParser, classify_line, extract_delta_content

__all__ = [
    "IgnoreReason",
    "ParserState",
    "ProtocolEvent",
    "SSEEventType",
    "SSEStreamParser",
    "classify_line",
    "extract_delta_content",
]
