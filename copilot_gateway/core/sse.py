"""SSE (Server-Sent Events) decoding, encoding and error detection."""

from __future__ import annotations

import codecs
import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional

DONE_SENTINEL = "[DONE]"


@dataclass
class SSEEvent:
    data: Optional[str]
    event: Optional[str] = None
    other_lines: list[str] = field(default_factory=list)

    def encode(self) -> bytes:
        lines: list[str] = []
        if self.event:
            lines.append(f"event: {self.event}")
        lines.extend(self.other_lines)
        if self.data is not None:
            for item in self.data.split("\n"):
                if item:
                    lines.append(f"data: {item}")
                else:
                    lines.append("data:")
        text = "\n".join(lines) + "\n\n"
        return text.encode("utf-8")

    @property
    def is_done(self) -> bool:
        return self.data is not None and self.data.strip() == DONE_SENTINEL

    def json(self) -> Optional[Any]:
        """Parsed JSON data, or None for [DONE], empty or malformed data."""
        if self.data is None or self.is_done:
            return None
        try:
            return json.loads(self.data)
        except json.JSONDecodeError:
            return None


class SSEDecoder:
    """Incremental decoder; events may be split across arbitrary chunks."""

    def __init__(self) -> None:
        self._buffer = ""
        # Multi-byte characters may straddle chunk boundaries.
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: bytes) -> list[SSEEvent]:
        if not chunk:
            return []
        text = self._decoder.decode(chunk)
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        self._buffer += text
        events: list[SSEEvent] = []

        while True:
            sep_index = self._buffer.find("\n\n")
            if sep_index == -1:
                break
            raw_event = self._buffer[:sep_index]
            self._buffer = self._buffer[sep_index + 2:]
            if not raw_event.strip():
                continue
            events.append(self._parse_event(raw_event))

        return events

    def flush(self) -> list[SSEEvent]:
        """Parse whatever is left once the stream ended without a blank line."""
        leftover = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        if not leftover.strip():
            return []
        return [self._parse_event(leftover.strip("\n"))]

    @staticmethod
    def _parse_event(raw: str) -> SSEEvent:
        data_lines: list[str] = []
        other_lines: list[str] = []
        event_name: Optional[str] = None
        for line in raw.split("\n"):
            if line.startswith("data:"):
                data_lines.append(line[5:].lstrip())
            elif line.startswith("event:"):
                event_name = line[6:].strip()
            else:
                other_lines.append(line)
        data = "\n".join(data_lines) if data_lines else None
        return SSEEvent(data=data, event=event_name, other_lines=other_lines)


async def iter_sse_events(byte_stream: AsyncIterator[bytes]) -> AsyncIterator[SSEEvent]:
    """Decode an async byte stream into SSE events, in arrival order."""
    decoder = SSEDecoder()
    async for chunk in byte_stream:
        for event in decoder.feed(chunk):
            yield event
    for event in decoder.flush():
        yield event


def format_sse_event(event_type: str, data: Any) -> bytes:
    """Encode one named SSE event with a JSON payload."""
    json_str = json.dumps(data, ensure_ascii=False)
    return f"event: {event_type}\ndata: {json_str}\n\n".encode("utf-8")


def detect_sse_stream_error(parsed: Any) -> Optional[str]:
    """
    Check a parsed SSE data payload for an error object.

    Returns an error message if an error is detected, None otherwise.

    Detects patterns like:
    - Anthropic-style: {"type":"error","error":{...}}
    - Generic: {"error":{...}}
    """
    if not isinstance(parsed, dict):
        return None

    if parsed.get("type") == "error":
        error_obj = parsed.get("error") or {}
        if isinstance(error_obj, dict):
            return error_obj.get("message") or str(error_obj)
        return str(error_obj) or "unknown error"

    error_obj = parsed.get("error")
    if isinstance(error_obj, dict):
        return error_obj.get("message") or str(error_obj)

    return None
