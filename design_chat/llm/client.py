"""
Streaming chat client for the design assistant endpoint.

One ``stream_chat`` call performs one POST against the completion endpoint,
feeds the response body through ``SSEStreamParser`` and reports progress
through caller-supplied callbacks. Request and stream failures are converted
into a notification plus ``on_error`` instead of being raised.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import httpx

from design_chat.logging_utils import (
    ContextualLogger,
    StreamErrorHandler,
    operation_context,
)
from design_chat.notifications import (
    LogNotifier,
    Notifier,
    callback_message,
    notification_for,
)

from .exceptions import (
    LLMError,
    NoStreamBodyError,
    TransportError,
    rejection_for_status,
)
from .models import ChatMessage, EndpointConfig, StreamOutcome
from .streaming.models import ProtocolEvent
from .streaming.parser import SSEStreamParser

if TYPE_CHECKING:                                        # pragma: no cover
    from design_chat.config import Configuration

DEFAULT_ERROR_MESSAGE = "Failed to connect to AI"
HTTP_NO_CONTENT = 204

DeltaCallback = Callable[[str], None]
DoneCallback = Callable[[], None]
ErrorCallback = Callable[[str], None]


class StreamingChatClient:
    """
    HTTP client that streams assistant replies as incremental text deltas.

    ``is_loading`` is true while any ``stream_chat`` call on this client is
    executing. Concurrent calls are independent: each owns its parser and
    callbacks.
    """

    def __init__(
        self,
        endpoint: EndpointConfig,
        notifier: Notifier | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.notifier: Notifier = notifier or LogNotifier()
        self._owns_client = http_client is None
        self.client: httpx.AsyncClient = http_client or httpx.AsyncClient(
            timeout=endpoint.timeout()
        )
        self._in_flight = 0
        self.last_stats: dict[str, Any] | None = None
        self._log = ContextualLogger({"endpoint": endpoint.url})

    @classmethod
    def from_config(
        cls, config: Configuration, **kwargs: Any
    ) -> StreamingChatClient:
        """Build a client from a ``Configuration`` instance."""
        return cls(config.get_endpoint_config(), **kwargs)

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @contextmanager
    def _loading(self) -> Iterator[None]:
        self._in_flight += 1
        try:
            yield
        finally:
            self._in_flight -= 1

    async def stream_chat(
        self,
        messages: Sequence[ChatMessage],
        on_delta: DeltaCallback,
        on_done: DoneCallback,
        on_error: ErrorCallback,
        cancel_event: asyncio.Event | None = None,
    ) -> StreamOutcome:
        """
        Stream one assistant reply for ``messages`` (oldest first).

        ``on_delta`` receives each non-empty text fragment in order. Exactly
        one of ``on_done``/``on_error`` fires, unless the call is cancelled
        through ``cancel_event`` or task cancellation, in which case neither
        fires.
        """
        with self._loading():
            async with operation_context(
                "stream_chat", context={"endpoint": self.endpoint.url}
            ) as log:
                try:
                    payload = {
                        "messages": [message.to_payload() for message in messages]
                    }
                    log.update(message_count=len(payload["messages"]))
                    completed = await self._stream_response(
                        payload, on_delta, cancel_event
                    )
                except asyncio.CancelledError:
                    log.info("Stream cancelled by task cancellation")
                    raise
                except Exception as e:
                    category = StreamErrorHandler.log_failure(e, log)
                    log.update(
                        outcome=StreamOutcome.FAILED.value, error_category=category
                    )
                    self.notifier.error(notification_for(e))
                    on_error(callback_message(e))
                    return StreamOutcome.FAILED

                if not completed:
                    log.update(outcome=StreamOutcome.CANCELLED.value)
                    return StreamOutcome.CANCELLED

                log.update(outcome=StreamOutcome.COMPLETED.value)
                on_done()
                return StreamOutcome.COMPLETED

    async def _stream_response(
        self,
        payload: dict[str, Any],
        on_delta: DeltaCallback,
        cancel_event: asyncio.Event | None,
    ) -> bool:
        """Run the request and the read loop. Returns False when cancelled."""
        if cancel_event is not None and cancel_event.is_set():
            return False

        try:
            async with self.client.stream(
                "POST",
                self.endpoint.url,
                json=payload,
                headers=self.endpoint.headers(),
            ) as response:
                if not response.is_success:
                    raise await self._rejection(response)

                if (
                    response.status_code == HTTP_NO_CONTENT
                    or response.headers.get("content-length") == "0"
                ):
                    raise NoStreamBodyError(status_code=response.status_code)

                return await self._read_stream(response, on_delta, cancel_event)

        except (httpx.HTTPError, httpx.StreamError) as e:
            raise TransportError(f"HTTP error during streaming: {e!s}") from e

    async def _read_stream(
        self,
        response: httpx.Response,
        on_delta: DeltaCallback,
        cancel_event: asyncio.Event | None,
    ) -> bool:
        parser = SSEStreamParser(errors=self.endpoint.decode_errors)
        try:
            async for chunk in response.aiter_bytes():
                if cancel_event is not None and cancel_event.is_set():
                    return False
                self._deliver(self._decode(parser.feed, chunk), on_delta)
                if parser.finished:
                    break

            self._deliver(self._decode(parser.finish), on_delta)
            return True
        finally:
            self.last_stats = parser.get_stats()
            self._log.debug("Stream parser finished", **self.last_stats)

    @staticmethod
    def _decode(
        step: Callable[..., list[ProtocolEvent]], *args: Any
    ) -> list[ProtocolEvent]:
        try:
            return step(*args)
        except UnicodeDecodeError as e:
            raise TransportError(f"Failed to decode stream: {e!s}") from e

    @staticmethod
    def _deliver(events: list[ProtocolEvent], on_delta: DeltaCallback) -> None:
        for event in events:
            if event.is_delta and event.text:
                on_delta(event.text)

    async def _rejection(self, response: httpx.Response) -> LLMError:
        """Turn a failure status into the matching rejection error."""
        response_data: dict[str, Any] = {}
        try:
            body = await response.aread()
            parsed = json.loads(body) if body else {}
            if isinstance(parsed, dict):
                response_data = parsed
        except (httpx.HTTPError, httpx.StreamError, ValueError):
            response_data = {}

        error = response_data.get("error")
        message = error if isinstance(error, str) and error else DEFAULT_ERROR_MESSAGE

        return rejection_for_status(
            response.status_code,
            message,
            response_data=response_data,
            retry_after=_parse_retry_after(response.headers.get("retry-after")),
        )

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> StreamingChatClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None
