"""Raw token counting for translated chat payloads.

The encoding comes from the upstream model metadata
(``capabilities.tokenizer``, e.g. ``o200k_base``). Assistant turns count as
output, everything else (including tool declarations) as input.
"""

from __future__ import annotations

import functools
import json
import logging
from typing import Any, Mapping, Protocol, TypedDict

import tiktoken

logger = logging.getLogger("copilot-gateway")

DEFAULT_ENCODING = "o200k_base"
TOKENS_PER_MESSAGE = 3
TOKENS_PER_NAME = 1
REPLY_PRIMING_TOKENS = 3
# Low-detail image tile cost; upstream does not expose the real figure.
IMAGE_TOKENS = 85


class TokenCount(TypedDict):
    input: int
    output: int


class Tokenizer(Protocol):
    def count(self, payload: Mapping[str, Any], model: Mapping[str, Any]) -> TokenCount:
        ...


@functools.lru_cache(maxsize=8)
def _get_encoding(name: str) -> "tiktoken.Encoding":
    try:
        return tiktoken.get_encoding(name)
    except ValueError:
        logger.warning("Unknown tokenizer '%s', falling back to %s", name, DEFAULT_ENCODING)
        return tiktoken.get_encoding(DEFAULT_ENCODING)


class TiktokenTokenizer:
    """Counts chat payload tokens with tiktoken encodings."""

    def count(self, payload: Mapping[str, Any], model: Mapping[str, Any]) -> TokenCount:
        capabilities = model.get("capabilities") or {}
        encoding = _get_encoding(capabilities.get("tokenizer") or DEFAULT_ENCODING)

        def encode_len(text: Any) -> int:
            if not text:
                return 0
            if not isinstance(text, str):
                text = json.dumps(text, ensure_ascii=False)
            return len(encoding.encode(text, disallowed_special=()))

        input_tokens = 0
        output_tokens = 0
        for message in payload.get("messages") or []:
            tokens = TOKENS_PER_MESSAGE + encode_len(message.get("role"))
            content = message.get("content")
            if isinstance(content, list):
                for part in content:
                    if part.get("type") == "image_url":
                        tokens += IMAGE_TOKENS
                    else:
                        tokens += encode_len(part.get("text"))
            else:
                tokens += encode_len(content)
            if message.get("name"):
                tokens += TOKENS_PER_NAME + encode_len(message["name"])
            tokens += encode_len(message.get("tool_call_id"))
            for call in message.get("tool_calls") or []:
                function = call.get("function") or {}
                tokens += encode_len(function.get("name")) + encode_len(function.get("arguments"))

            if message.get("role") == "assistant":
                output_tokens += tokens
            else:
                input_tokens += tokens

        if input_tokens:
            input_tokens += REPLY_PRIMING_TOKENS

        for tool in payload.get("tools") or []:
            input_tokens += encode_len(tool.get("function"))

        return {"input": input_tokens, "output": output_tokens}
