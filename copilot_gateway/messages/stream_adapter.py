"""Chat-completion SSE -> Anthropic Messages SSE.

Upstream chunks carry ``choices[].delta`` fragments (text, tool call pieces
keyed by ``index``) and a trailing ``finish_reason``/``usage``. They become the
Anthropic event sequence::

    message_start
    content_block_start / content_block_delta* / content_block_stop   (per block)
    message_delta   (stop_reason + usage)
    message_stop

A text block stays open until a tool call starts; tool blocks stay open until
the stream ends, since their argument fragments may interleave. Events for a
chunk are yielded before the next chunk is read.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

from ..core.sse import detect_sse_stream_error, format_sse_event, iter_sse_events
from ..types.chat import ChatCompletionChunk
from .translator import _convert_stop_reason, convert_usage

logger = logging.getLogger("copilot-gateway")


def generate_message_id() -> str:
    return f"msg_{uuid.uuid4().hex[:24]}"


def _event(name: str, **fields: Any) -> bytes:
    return format_sse_event(name, {"type": name, **fields})


@dataclass
class _Block:
    index: int
    kind: str
    text: str = ""
    tool_id: str = ""
    tool_name: str = ""
    open: bool = True

    def to_content(self) -> dict[str, Any]:
        if self.kind == "text":
            return {"type": "text", "text": self.text}
        try:
            tool_input = json.loads(self.text) if self.text else {}
        except json.JSONDecodeError:
            tool_input = {"raw": self.text}
        return {"type": "tool_use", "id": self.tool_id, "name": self.tool_name, "input": tool_input}


class ChatToMessagesStreamAdapter:
    """Stateful translator for one streamed completion.

    Feed it parsed chunks with ``process_chunk`` (or a raw byte stream with
    ``adapt_stream``) and call ``finish`` once upstream is exhausted.
    ``build_final_message`` returns everything seen so far as a non-streaming
    message body.
    """

    def __init__(self, message_id: str, model: str) -> None:
        self.message_id = message_id
        self.model = model
        self.blocks: list[_Block] = []
        self.finish_reason: Optional[str] = None
        self.usage: dict[str, int] = {"input_tokens": 0, "output_tokens": 0}
        self.error: Optional[str] = None
        self._text_block: Optional[_Block] = None
        self._tool_blocks: dict[int, _Block] = {}
        self._started = False
        self._done = False

    async def adapt_stream(self, chat_stream: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        async for sse in iter_sse_events(chat_stream):
            if sse.is_done:
                break
            chunk = sse.json()
            if chunk is None:
                if sse.data:
                    logger.debug("Skipping unparseable stream chunk: %s", sse.data[:100])
                continue
            for out in self.process_chunk(chunk):
                yield out
            if self._done:
                return
        for out in self.finish():
            yield out

    def process_chunk(self, data: ChatCompletionChunk) -> list[bytes]:
        """Events produced by one parsed upstream chunk."""
        error = detect_sse_stream_error(data)
        if error:
            logger.warning("Upstream reported an error mid-stream: %s", error)
            self.error = error
            self._done = True
            return [_event("error", error={"type": "api_error", "message": error})]

        if data.get("model") and not self._started:
            self.model = data["model"]
        if data.get("usage"):
            self.usage = convert_usage(data["usage"])

        out: list[bytes] = []
        for choice in data.get("choices") or []:
            out.extend(self._ensure_started())
            delta = choice.get("delta") or {}
            if delta.get("content"):
                out.extend(self._append_text(delta["content"]))
            for tool_delta in delta.get("tool_calls") or []:
                out.extend(self._append_tool_call(tool_delta))
            self._merge_finish_reason(choice.get("finish_reason"))
        return out

    def finish(self) -> list[bytes]:
        """Close every open block and emit ``message_delta`` + ``message_stop``."""
        if self._done:
            return []
        self._done = True
        out = self._ensure_started()
        out.extend(self._close_text())
        for block in self.blocks:
            if block.open:
                block.open = False
                out.append(_event("content_block_stop", index=block.index))
        out.append(_event(
            "message_delta",
            delta={"stop_reason": _convert_stop_reason(self.finish_reason), "stop_sequence": None},
            usage=dict(self.usage),
        ))
        out.append(_event("message_stop"))
        return out

    def build_final_message(self) -> dict[str, Any]:
        return {
            "id": self.message_id,
            "type": "message",
            "role": "assistant",
            "content": [block.to_content() for block in self.blocks],
            "model": self.model,
            "stop_reason": _convert_stop_reason(self.finish_reason),
            "stop_sequence": None,
            "usage": dict(self.usage),
        }

    def _ensure_started(self) -> list[bytes]:
        if self._started:
            return []
        self._started = True
        return [_event("message_start", message={
            "id": self.message_id,
            "type": "message",
            "role": "assistant",
            "content": [],
            "model": self.model,
            "stop_reason": None,
            "stop_sequence": None,
            "usage": {"input_tokens": self.usage["input_tokens"], "output_tokens": 0},
        })]

    def _merge_finish_reason(self, reason: Optional[str]) -> None:
        # tool_calls wins; a running "stop" yields to anything later.
        if reason and (self.finish_reason in (None, "stop") or reason == "tool_calls"):
            self.finish_reason = reason

    def _open_block(self, kind: str, **attrs: Any) -> _Block:
        block = _Block(index=len(self.blocks), kind=kind, **attrs)
        self.blocks.append(block)
        return block

    def _append_text(self, text: str) -> list[bytes]:
        out: list[bytes] = []
        if self._text_block is None:
            self._text_block = self._open_block("text")
            out.append(_event(
                "content_block_start",
                index=self._text_block.index,
                content_block={"type": "text", "text": ""},
            ))
        self._text_block.text += text
        out.append(_event(
            "content_block_delta",
            index=self._text_block.index,
            delta={"type": "text_delta", "text": text},
        ))
        return out

    def _close_text(self) -> list[bytes]:
        block, self._text_block = self._text_block, None
        if block is None or not block.open:
            return []
        block.open = False
        return [_event("content_block_stop", index=block.index)]

    def _append_tool_call(self, tool_delta: dict[str, Any]) -> list[bytes]:
        out: list[bytes] = []
        position = tool_delta.get("index", 0)
        function = tool_delta.get("function") or {}
        block = self._tool_blocks.get(position)

        if block is None:
            out.extend(self._close_text())
            block = self._open_block(
                "tool_use",
                tool_id=tool_delta.get("id") or f"toolu_{uuid.uuid4().hex[:12]}",
                tool_name=function.get("name") or "",
            )
            self._tool_blocks[position] = block
            out.append(_event(
                "content_block_start",
                index=block.index,
                content_block={"type": "tool_use", "id": block.tool_id, "name": block.tool_name, "input": {}},
            ))
        elif function.get("name"):
            block.tool_name = function["name"]

        fragment = function.get("arguments")
        if fragment:
            block.text += fragment
            out.append(_event(
                "content_block_delta",
                index=block.index,
                delta={"type": "input_json_delta", "partial_json": fragment},
            ))
        return out


async def adapt_chat_stream_to_messages(
    message_id: str,
    model: str,
    chat_stream: AsyncIterator[bytes],
) -> AsyncIterator[bytes]:
    adapter = ChatToMessagesStreamAdapter(message_id, model)
    async for out in adapter.adapt_stream(chat_stream):
        yield out
