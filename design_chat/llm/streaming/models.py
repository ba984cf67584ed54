"""
Streaming-specific dataclasses for the SSE line parser.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SSEEventType(Enum):
    """Protocol events decoded from one SSE line."""
    DELTA = "delta"
    DONE = "done"
    IGNORED = "ignored"


class IgnoreReason(Enum):
    """Why a line produced no delta."""
    COMMENT = "comment"
    BLANK = "blank"
    UNFRAMED = "unframed"
    EMPTY_DELTA = "empty_delta"


class ParserState(Enum):
    """Line extraction state of the stream parser."""
    AWAITING_LINE = "awaiting_line"
    HAVE_CANDIDATE_LINE = "have_candidate_line"
    FINISHED = "finished"


@dataclass(frozen=True)
class ProtocolEvent:
    """One decoded SSE line. Transient, never persisted."""
    event_type: SSEEventType
    text: str | None = None
    raw_line: str = ""
    reason: IgnoreReason | None = None

    @classmethod
    def delta(cls, text: str, raw_line: str = "") -> ProtocolEvent:
        return cls(SSEEventType.DELTA, text=text, raw_line=raw_line)

    @classmethod
    def done(cls, raw_line: str = "") -> ProtocolEvent:
        return cls(SSEEventType.DONE, raw_line=raw_line)

    @classmethod
    def ignored(cls, reason: IgnoreReason, raw_line: str = "") -> ProtocolEvent:
        return cls(SSEEventType.IGNORED, raw_line=raw_line, reason=reason)

    @property
    def is_delta(self) -> bool:
        return self.event_type is SSEEventType.DELTA

    @property
    def is_done(self) -> bool:
        return self.event_type is SSEEventType.DONE


@dataclass
class ParserStats:
    """Counters for one parser instance."""
    bytes_received: int = 0
    lines_processed: int = 0
    delta_events: int = 0
    ignored_lines: int = 0
    recovery_attempts: int = 0
    discarded_fragments: int = 0
    done_seen: bool = False

    def record(self, event: ProtocolEvent) -> None:
        self.lines_processed += 1
        if event.is_delta:
            self.delta_events += 1
        elif event.is_done:
            self.done_seen = True
        else:
            self.ignored_lines += 1

    def as_dict(self) -> dict[str, int | bool]:
        return dict(self.__dict__)


@dataclass
class StreamBuffer:
    """
    Decoded text not yet split into lines.

    Holds zero or more complete lines followed by at most one trailing
    incomplete line.
    """
    text: str = ""

    def append(self, text: str) -> None:
        if text:
            self.text += text

    def pop_line(self) -> str | None:
        """Remove and return the first complete line, without its terminator."""
        newline_index = self.text.find("\n")
        if newline_index == -1:
            return None
        line = self.text[:newline_index]
        self.text = self.text[newline_index + 1:]
        return line

    def rewind(self, line: str) -> None:
        """Put a popped line back at the front, terminator included."""
        self.text = line + "\n" + self.text

    def drain(self) -> list[str]:
        """Split out everything left, treating the trailing fragment as a line."""
        lines = self.text.split("\n")
        self.text = ""
        return lines

    def __bool__(self) -> bool:
        return bool(self.text)
