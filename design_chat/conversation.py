"""
Client-side conversation state.

Holds the ordered message history sent with each request and folds streamed
deltas into the trailing assistant message as they arrive.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from design_chat.llm.client import StreamingChatClient
from design_chat.llm.models import ChatMessage, MessageRole, StreamOutcome
from design_chat.logging_utils import log_operation


class Conversation:
    """Ordered history of one chat, oldest message first."""

    def __init__(self, messages: list[ChatMessage] | None = None) -> None:
        self._messages: list[ChatMessage] = list(messages or [])
        self.last_error: str | None = None

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def add_user(self, content: str) -> ChatMessage:
        message = ChatMessage.user(content)
        self._messages.append(message)
        return message

    def apply_delta(self, text: str) -> ChatMessage:
        """
        Append a delta to the assistant reply in progress.

        The first delta after a user message opens a new assistant message;
        later deltas extend it.
        """
        last = self._messages[-1] if self._messages else None
        if last is not None and last.role is MessageRole.ASSISTANT:
            updated = ChatMessage.assistant(last.content + text)
            self._messages[-1] = updated
        else:
            updated = ChatMessage.assistant(text)
            self._messages.append(updated)
        return updated

    @property
    def last_reply(self) -> str | None:
        last = self._messages[-1] if self._messages else None
        if last is None or last.role is not MessageRole.ASSISTANT:
            return None
        return last.content

    @log_operation("conversation_send")
    async def send(
        self,
        client: StreamingChatClient,
        content: str,
        on_delta: Callable[[str], None] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> StreamOutcome:
        """Add a user message and stream the assistant reply into history."""
        self.add_user(content)
        self.last_error = None

        def handle_delta(text: str) -> None:
            self.apply_delta(text)
            if on_delta is not None:
                on_delta(text)

        def handle_error(message: str) -> None:
            self.last_error = message

        return await client.stream_chat(
            self.messages,
            on_delta=handle_delta,
            on_done=lambda: None,
            on_error=handle_error,
            cancel_event=cancel_event,
        )
