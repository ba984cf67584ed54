"""
Core dataclasses for chat completion requests.

This module provides:
- Message roles and the immutable chat message
- Endpoint configuration (validated with pydantic)
- The outcome of one streaming call
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field


class MessageRole(Enum):
    """Roles accepted by the chat endpoint."""
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    """One role-tagged message of a conversation."""
    role: MessageRole
    content: str

    def to_payload(self) -> dict[str, Any]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def user(cls, content: str) -> ChatMessage:
        return cls(MessageRole.USER, content)

    @classmethod
    def assistant(cls, content: str) -> ChatMessage:
        return cls(MessageRole.ASSISTANT, content)


class StreamOutcome(Enum):
    """How a single streaming call ended."""
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class EndpointConfig(BaseModel):
    """Connection settings for the streaming chat endpoint."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(min_length=1)
    api_key: str = Field(min_length=1)

    connect_timeout: float = Field(default=10.0, gt=0)
    read_timeout: float = Field(default=60.0, gt=0)
    write_timeout: float = Field(default=10.0, gt=0)
    pool_timeout: float = Field(default=10.0, gt=0)

    decode_errors: Literal["strict", "replace", "ignore"] = "replace"

    def timeout(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self.connect_timeout,
            read=self.read_timeout,
            write=self.write_timeout,
            pool=self.pool_timeout,
        )

    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
