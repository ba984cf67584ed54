#!/usr/bin/env python3
"""
Tests for the incremental SSE stream parser.
"""

import json

import pytest

from design_chat.llm.streaming.models import IgnoreReason, ParserState, SSEEventType
from design_chat.llm.streaming.parser import (
    SSEStreamParser,
    classify_line,
    extract_delta_content,
)


def frame(content: str) -> str:
    payload = {"choices": [{"delta": {"content": content}}]}
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def run_chunks(chunks, parser=None):
    """Feed chunks, flush, and return (deltas, parser)."""
    parser = parser or SSEStreamParser()
    deltas = []
    for chunk in chunks:
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        deltas += [e.text for e in parser.feed(chunk) if e.is_delta]
    deltas += [e.text for e in parser.finish() if e.is_delta]
    return deltas, parser


STREAM = (
    ": keep-alive\n\n"
    + frame("Bonjour, ")
    + frame("café ☕ ")
    + ":ping\n"
    + frame("日本の")
    + "\n"
    + frame("done.")
    + "data: [DONE]\n\n"
)
EXPECTED = ["Bonjour, ", "café ☕ ", "日本の", "done."]


class TestClassifyLine:
    """Test per-line classification."""

    def test_comment_line_is_ignored(self):
        event = classify_line(":keepalive")
        assert event.event_type is SSEEventType.IGNORED
        assert event.reason is IgnoreReason.COMMENT

    def test_blank_line_is_ignored(self):
        assert classify_line("").reason is IgnoreReason.BLANK
        assert classify_line("   ").reason is IgnoreReason.BLANK
        assert classify_line("\r").reason is IgnoreReason.BLANK

    def test_unframed_lines_are_ignored(self):
        assert classify_line("event: message").reason is IgnoreReason.UNFRAMED
        # The prefix must include the space
        assert classify_line('data:{"choices":[]}').reason is IgnoreReason.UNFRAMED

    def test_done_sentinel(self):
        assert classify_line("data: [DONE]").is_done
        assert classify_line("data:  [DONE]  \r").is_done

    def test_delta_line(self):
        event = classify_line(frame("hi").rstrip("\n"))
        assert event.is_delta
        assert event.text == "hi"

    def test_crlf_is_stripped(self):
        event = classify_line(frame("hi").rstrip("\n") + "\r")
        assert event.is_delta
        assert event.text == "hi"

    def test_empty_and_missing_content_are_ignored(self):
        empty = classify_line(frame("").rstrip("\n"))
        assert empty.reason is IgnoreReason.EMPTY_DELTA

        missing = classify_line('data: {"choices":[{"delta":{"role":"assistant"}}]}')
        assert missing.reason is IgnoreReason.EMPTY_DELTA

        no_choices = classify_line('data: {"choices":[]}')
        assert no_choices.reason is IgnoreReason.EMPTY_DELTA

    def test_invalid_json_returns_none(self):
        assert classify_line('data: {"choices":[{"delta":{"content":"Hel') is None

    def test_extract_delta_content_tolerates_odd_shapes(self):
        assert extract_delta_content(42) is None
        assert extract_delta_content({"choices": "nope"}) is None
        assert extract_delta_content({"choices": [None]}) is None
        assert extract_delta_content({"choices": [{"delta": {"content": 7}}]}) is None
        assert extract_delta_content({"choices": [{"delta": {"content": "x"}}]}) == "x"


class TestScenarios:
    """Concrete streams with known expected output."""

    def test_json_split_mid_token(self):
        chunks = [
            'data: {"choices":[{"delta":{"content":"Hel',
            'lo"}}]}\n\ndata: {"choices":[{"delta":{"content":" world"}}]}\n\n'
            "data: [DONE]\n",
        ]
        parser = SSEStreamParser()

        assert parser.feed(chunks[0].encode()) == []
        assert parser.state is ParserState.AWAITING_LINE

        events = parser.feed(chunks[1].encode())
        assert [e.text for e in events if e.is_delta] == ["Hello", " world"]
        assert parser.finished
        assert parser.finish() == []

    def test_keepalive_then_done(self):
        deltas, parser = run_chunks([":keepalive\n\ndata: [DONE]\n"])
        assert deltas == []
        assert parser.stats.done_seen is True

    def test_line_split_at_prefix_boundary(self):
        line = frame("abc")
        deltas, _ = run_chunks(["da", "ta", ": ", line[len("data: "):]])
        assert deltas == ["abc"]

    def test_multiple_frames_in_one_chunk(self):
        deltas, _ = run_chunks([frame("a") + frame("b") + frame("c")])
        assert deltas == ["a", "b", "c"]

    def test_crlf_line_endings(self):
        text = frame("one").replace("\n", "\r\n") + frame("two").replace("\n", "\r\n")
        deltas, _ = run_chunks([text])
        assert deltas == ["one", "two"]

    def test_source_ends_without_trailing_newline(self):
        deltas, parser = run_chunks([frame("first") + frame("last").rstrip("\n")])
        assert deltas == ["first", "last"]
        assert parser.finished

    def test_truncated_frame_at_end_is_discarded(self):
        deltas, parser = run_chunks(
            [frame("kept") + 'data: {"choices":[{"delta":{"content":"lo']
        )
        assert deltas == ["kept"]
        assert parser.stats.discarded_fragments == 1

    def test_empty_fragments_are_not_delivered(self):
        deltas, parser = run_chunks([frame("") + frame("x") + frame("")])
        assert deltas == ["x"]
        assert parser.stats.ignored_lines >= 2


class TestSentinel:
    """Nothing is delivered after [DONE]."""

    def test_lines_after_done_in_same_chunk(self):
        deltas, _ = run_chunks([frame("a") + "data: [DONE]\n" + frame("b")])
        assert deltas == ["a"]

    def test_chunks_after_done_are_ignored(self):
        parser = SSEStreamParser()
        parser.feed((frame("a") + "data: [DONE]\n").encode())
        assert parser.finished
        assert parser.feed(frame("late").encode()) == []
        assert parser.finish() == []

    def test_done_during_final_flush(self):
        deltas, parser = run_chunks([frame("a") + "data: [DONE]"])
        assert deltas == ["a"]
        assert parser.stats.done_seen is True

    def test_done_found_only_in_flush_stops_later_lines(self):
        parser = SSEStreamParser()
        # A malformed terminated line stalls extraction until the flush
        parser.feed(b"data: {oops\n")
        parser.feed((frame("a") + "data: [DONE]\n" + frame("b")).encode())
        deltas = [e.text for e in parser.finish() if e.is_delta]
        assert deltas == ["a"]
        assert parser.stats.done_seen is True


class TestRecovery:
    """Unparseable data lines are re-buffered verbatim."""

    def test_rewind_keeps_bytes_in_order(self):
        parser = SSEStreamParser()
        events = parser.feed(b"data: {broken\ntail")

        assert events == []
        assert parser.buffered_text == "data: {broken\ntail"
        assert parser.stats.recovery_attempts == 1
        assert parser.state is ParserState.AWAITING_LINE

    def test_rewound_line_is_dropped_at_finish(self):
        deltas, parser = run_chunks(["data: {broken\n", frame("after")])
        assert deltas == ["after"]
        assert parser.stats.discarded_fragments == 1
        assert parser.stats.recovery_attempts >= 1

    def test_lines_before_bad_line_are_delivered_immediately(self):
        parser = SSEStreamParser()
        events = parser.feed((frame("early") + "data: {broken\n").encode())
        assert [e.text for e in events if e.is_delta] == ["early"]


class TestChunkBoundaryInvariance:
    """Any fragmentation yields the same deltas as a single chunk."""

    def test_single_chunk_baseline(self):
        deltas, parser = run_chunks([STREAM])
        assert deltas == EXPECTED
        assert parser.stats.done_seen is True

    def test_every_two_way_split(self):
        raw = STREAM.encode("utf-8")
        for index in range(1, len(raw)):
            deltas, _ = run_chunks([raw[:index], raw[index:]])
            assert deltas == EXPECTED, f"split at byte {index}"

    def test_byte_by_byte(self):
        raw = STREAM.encode("utf-8")
        deltas, _ = run_chunks([raw[i:i + 1] for i in range(len(raw))])
        assert deltas == EXPECTED

    @pytest.mark.parametrize("size", [2, 3, 5, 7, 13])
    def test_fixed_size_chunks(self, size):
        raw = STREAM.encode("utf-8")
        deltas, _ = run_chunks([raw[i:i + size] for i in range(0, len(raw), size)])
        assert deltas == EXPECTED

    def test_multibyte_character_split(self):
        raw = frame("☕").encode("utf-8")
        cup = "☕".encode()
        split = raw.index(cup) + 1
        deltas, _ = run_chunks([raw[:split], raw[split:]])
        assert deltas == ["☕"]

    def test_comment_and_blank_interleaving(self):
        noisy = (
            ":a\n\n" + frame("x") + ":b\n\n\n" + frame("y") + ":c\r\n" + "data: [DONE]\n"
        )
        clean = frame("x") + frame("y") + "data: [DONE]\n"
        assert run_chunks([noisy])[0] == run_chunks([clean])[0] == ["x", "y"]


class TestDecoding:
    """Decoder error policy."""

    def test_invalid_bytes_are_replaced_by_default(self):
        raw = b'data: {"choices":[{"delta":{"content":"a\xff"}}]}\n'
        deltas, _ = run_chunks([raw])
        assert deltas == ["a\ufffd"]

    def test_strict_policy_raises(self):
        parser = SSEStreamParser(errors="strict")
        with pytest.raises(UnicodeDecodeError):
            parser.feed(b"data: \xff\n")


class TestStats:
    """Parser statistics."""

    def test_stats_and_reset(self):
        parser = SSEStreamParser()
        parser.feed((":c\n" + frame("a")).encode())
        stats = parser.get_stats()

        assert stats["delta_events"] == 1
        assert stats["ignored_lines"] == 2
        assert stats["lines_processed"] == 3
        assert stats["bytes_received"] > 0

        parser.reset()
        assert parser.get_stats()["lines_processed"] == 0
        assert parser.buffered_text == ""
        assert parser.state is ParserState.AWAITING_LINE


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
