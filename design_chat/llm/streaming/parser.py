"""
Incremental SSE parser for chat completion streams.

Raw bytes go in through ``feed`` in whatever pieces the transport hands out;
protocol events come out as soon as the line that carries them is complete.
The parser owns a stateful UTF-8 decoder, so multi-byte characters split
across chunk boundaries decode intact.
"""

from __future__ import annotations

import codecs
import json
from typing import Any

import structlog

from .models import (
    IgnoreReason,
    ParserState,
    ParserStats,
    ProtocolEvent,
    StreamBuffer,
)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

logger = structlog.get_logger(__name__)


def extract_delta_content(payload: Any) -> str | None:
    """Return ``choices[0].delta.content`` when the payload carries one."""
    if not isinstance(payload, dict):
        return None
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    choice = choices[0]
    if not isinstance(choice, dict):
        return None
    delta = choice.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    return content if isinstance(content, str) else None


def classify_line(line: str) -> ProtocolEvent | None:
    """
    Classify one SSE line.

    Returns None when the line is framed as data but its payload is not
    valid JSON; the caller decides whether that means "incomplete" or
    "discard".
    """
    if line.endswith("\r"):
        line = line[:-1]

    if line.startswith(":"):
        return ProtocolEvent.ignored(IgnoreReason.COMMENT, line)
    if not line.strip():
        return ProtocolEvent.ignored(IgnoreReason.BLANK, line)
    if not line.startswith(DATA_PREFIX):
        return ProtocolEvent.ignored(IgnoreReason.UNFRAMED, line)

    data = line[len(DATA_PREFIX):].strip()
    if data == DONE_SENTINEL:
        return ProtocolEvent.done(line)

    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        return None

    if content := extract_delta_content(payload):
        return ProtocolEvent.delta(content, line)
    return ProtocolEvent.ignored(IgnoreReason.EMPTY_DELTA, line)


class SSEStreamParser:
    """
    Line-oriented parser for ``data: <json>`` streams ending in ``[DONE]``.

    One instance serves exactly one stream. ``feed`` returns the events that
    became complete with the new bytes, ``finish`` flushes whatever is left
    once the source is exhausted. After a ``[DONE]`` line both return
    nothing.

    A data line that fails to parse mid-stream is put back at the front of
    the buffer verbatim and extraction pauses until more bytes arrive. At
    ``finish`` such lines are dropped without error.
    """

    def __init__(self, encoding: str = "utf-8", errors: str = "replace"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors=errors)
        self._buffer = StreamBuffer()
        self._candidate: str | None = None
        self.state = ParserState.AWAITING_LINE
        self.stats = ParserStats()

    @property
    def finished(self) -> bool:
        return self.state is ParserState.FINISHED

    @property
    def buffered_text(self) -> str:
        return self._buffer.text

    def feed(self, chunk: bytes) -> list[ProtocolEvent]:
        """Decode a raw chunk and return the events it completed."""
        if self.finished:
            return []

        self.stats.bytes_received += len(chunk)
        self._buffer.append(self._decoder.decode(chunk))
        return self._extract_lines()

    def finish(self) -> list[ProtocolEvent]:
        """Flush the decoder and the buffer at end of stream."""
        if self.finished:
            return []

        self._buffer.append(self._decoder.decode(b"", final=True))
        events: list[ProtocolEvent] = []

        for line in self._buffer.drain():
            if not line:
                continue
            event = classify_line(line)
            if event is None:
                self.stats.discarded_fragments += 1
                logger.debug("Discarding incomplete frame at end of stream", line=line)
                continue
            self.stats.record(event)
            if event.is_done:
                break
            events.append(event)

        self.state = ParserState.FINISHED
        return events

    def _extract_lines(self) -> list[ProtocolEvent]:
        events: list[ProtocolEvent] = []

        while self.state is not ParserState.FINISHED:
            if self.state is ParserState.AWAITING_LINE:
                line = self._buffer.pop_line()
                if line is None:
                    break
                self._candidate = line
                self.state = ParserState.HAVE_CANDIDATE_LINE
                continue

            candidate = self._candidate or ""
            self._candidate = None
            event = classify_line(candidate)

            if event is None:
                # Frame split away from its line terminator; wait for more data.
                self._buffer.rewind(candidate)
                self.state = ParserState.AWAITING_LINE
                self.stats.recovery_attempts += 1
                logger.debug("Re-buffering unparsed data line", line=candidate)
                break

            self.stats.record(event)
            if event.is_done:
                self.state = ParserState.FINISHED
                break

            self.state = ParserState.AWAITING_LINE
            events.append(event)

        return events

    def get_stats(self) -> dict[str, int | bool]:
        """Get parser statistics for monitoring."""
        return self.stats.as_dict()

    def reset(self) -> None:
        """Reset the parser for a new stream."""
        self._decoder.reset()
        self._buffer = StreamBuffer()
        self._candidate = None
        self.state = ParserState.AWAITING_LINE
        self.stats = ParserStats()
