"""Tests for SSE decoding, encoding and error detection."""

import pytest

from copilot_gateway.core.sse import (
    SSEDecoder,
    SSEEvent,
    detect_sse_stream_error,
    format_sse_event,
    iter_sse_events,
)


async def _aiter(chunks):
    for chunk in chunks:
        yield chunk


class TestSSEDecoder:
    def test_single_event(self):
        events = SSEDecoder().feed(b'data: {"a": 1}\n\n')
        assert len(events) == 1
        assert events[0].json() == {"a": 1}

    def test_event_split_across_chunks(self):
        decoder = SSEDecoder()
        assert decoder.feed(b'data: {"a"') == []
        events = decoder.feed(b': 1}\n\n')
        assert events[0].json() == {"a": 1}

    def test_named_event(self):
        events = SSEDecoder().feed(b"event: response.created\ndata: {}\n\n")
        assert events[0].event == "response.created"
        assert events[0].data == "{}"

    def test_crlf_line_endings(self):
        events = SSEDecoder().feed(b"data: x\r\n\r\ndata: y\r\n\r\n")
        assert [e.data for e in events] == ["x", "y"]

    def test_multibyte_character_split(self):
        raw = 'data: {"t": "héllo"}\n\n'.encode("utf-8")
        split = raw.index("é".encode("utf-8")) + 1
        decoder = SSEDecoder()
        events = decoder.feed(raw[:split]) + decoder.feed(raw[split:])
        assert events[0].json() == {"t": "héllo"}

    def test_flush_trailing_event(self):
        decoder = SSEDecoder()
        assert decoder.feed(b"data: tail") == []
        assert [e.data for e in decoder.flush()] == ["tail"]

    def test_done_sentinel(self):
        event = SSEDecoder().feed(b"data: [DONE]\n\n")[0]
        assert event.is_done
        assert event.json() is None

    def test_comment_lines_kept(self):
        event = SSEDecoder().feed(b": keep-alive\ndata: 1\n\n")[0]
        assert event.other_lines == [": keep-alive"]


class TestEncoding:
    def test_format_sse_event(self):
        assert format_sse_event("ping", {"type": "ping"}) == b'event: ping\ndata: {"type": "ping"}\n\n'

    def test_event_encode_round_trip(self):
        event = SSEEvent(data='{"x": 1}', event="response.done")
        decoded = SSEDecoder().feed(event.encode())[0]
        assert decoded.event == "response.done"
        assert decoded.data == '{"x": 1}'


class TestIterSSEEvents:
    @pytest.mark.asyncio
    async def test_arrival_order(self):
        chunks = [b"data: 1\n\nda", b"ta: 2\n\n", b"data: 3"]
        events = [event.data async for event in iter_sse_events(_aiter(chunks))]
        assert events == ["1", "2", "3"]


class TestDetectSSEStreamError:
    def test_anthropic_style(self):
        assert detect_sse_stream_error({"type": "error", "error": {"message": "bad"}}) == "bad"

    def test_generic_error(self):
        assert detect_sse_stream_error({"error": {"message": "quota"}}) == "quota"

    def test_normal_chunk(self):
        assert detect_sse_stream_error({"choices": []}) is None
        assert detect_sse_stream_error("text") is None
