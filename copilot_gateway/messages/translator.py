"""Anthropic Messages <-> Copilot chat-completion translation.

Request direction:
- Anthropic system (top-level) -> leading system message
- tool_result blocks -> tool messages, emitted before the rest of the user turn
- assistant tool_use blocks -> tool_calls; text and thinking folded into content
- image blocks -> image_url parts with a data URI
- tools / tool_choice -> function tools / OpenAI tool_choice
- model id normalized and variant-resolved, then the capability descriptor
  decides cache-control hints and reasoning_effort

Response direction merges every choice into one Anthropic message.

Reference:
- Anthropic Messages API: https://docs.anthropic.com/en/api/messages
- OpenAI Chat Completions: https://platform.openai.com/docs/api-reference/chat
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

from ..core.exceptions import InvalidRequestError
from ..models.capabilities import DEFAULT_REGISTRY, ModelCapabilityRegistry
from ..models.identity import MODEL_VARIANTS, apply_model_variant
from ..types.anthropic import AnthropicMessagesPayload, AnthropicResponse, AnthropicUsage
from ..types.chat import ChatCompletionResponse, ChatCompletionsPayload

logger = logging.getLogger("copilot-gateway")

EPHEMERAL_CACHE_CONTROL = {"type": "ephemeral"}
MAX_REASONING_EFFORT = "high"

_STOP_REASONS: dict[str, str] = {
    "stop": "end_turn",
    "length": "max_tokens",
    "tool_calls": "tool_use",
    "function_call": "tool_use",
    "content_filter": "refusal",
}


# =============================================================================
# Anthropic Messages -> chat completions
# =============================================================================


def _convert_image_block(block: Mapping[str, Any]) -> dict[str, Any]:
    """Convert an Anthropic image block to an image_url content part.

    Anthropic format:
        {"type": "image", "source": {"type": "base64", "media_type": "image/png", "data": "..."}}
        {"type": "image", "source": {"type": "url", "url": "https://..."}}

    Chat format:
        {"type": "image_url", "image_url": {"url": "data:image/png;base64,..."}}
    """
    source = block.get("source")
    if not isinstance(source, Mapping):
        source = {}
    if source.get("type") == "url":
        url = source.get("url", "")
    else:
        url = f"data:{source.get('media_type', '')};base64,{source.get('data', '')}"
    return {"type": "image_url", "image_url": {"url": url}}


def _block_text(block: Mapping[str, Any]) -> str:
    if block.get("type") == "thinking":
        return block.get("thinking") or ""
    return block.get("text") or ""


def _map_content(content: Any) -> str | list[dict[str, Any]] | None:
    """Map Anthropic message content to chat content.

    Strings pass through. Block lists without images collapse to their text
    and thinking joined by blank lines; lists with an image become typed parts.
    """
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return None

    content = [block for block in content if isinstance(block, Mapping)]
    has_image = any(block.get("type") == "image" for block in content)
    if not has_image:
        return "\n\n".join(
            _block_text(block)
            for block in content
            if block.get("type") in ("text", "thinking")
        )

    parts: list[dict[str, Any]] = []
    for block in content:
        block_type = block.get("type")
        if block_type in ("text", "thinking"):
            parts.append({"type": "text", "text": _block_text(block)})
        elif block_type == "image":
            parts.append(_convert_image_block(block))
        else:
            logger.debug("Dropping %s block from multi-modal content", block_type)
    return parts


def _serialize_tool_input(input_data: Any) -> str:
    """Serialize tool input to a compact JSON argument string."""
    return json.dumps(
        input_data if input_data is not None else {}, ensure_ascii=False, separators=(",", ":")
    )


def _convert_system_to_openai(system: Any) -> list[dict[str, Any]]:
    """Flatten the Anthropic system prompt into at most one system message."""
    if not system:
        return []
    if isinstance(system, str):
        return [{"role": "system", "content": system}]
    if isinstance(system, list):
        text = "\n\n".join(
            block.get("text") or "" for block in system if isinstance(block, Mapping)
        )
        return [{"role": "system", "content": text}]
    logger.warning("Ignoring system prompt of type %s", type(system).__name__)
    return []


def _convert_user_message(content: Any) -> list[dict[str, Any]]:
    if not isinstance(content, list):
        return [{"role": "user", "content": _map_content(content)}]

    content = [b for b in content if isinstance(b, Mapping)]

    tool_results = [b for b in content if b.get("type") == "tool_result"]
    other_blocks = [b for b in content if b.get("type") != "tool_result"]

    # Tool results go first: tool_use -> tool_result -> next user turn.
    messages: list[dict[str, Any]] = []
    for block in tool_results:
        messages.append({
            "role": "tool",
            "tool_call_id": block.get("tool_use_id", ""),
            "content": _map_content(block.get("content")),
        })

    if other_blocks:
        messages.append({"role": "user", "content": _map_content(other_blocks)})

    return messages


def _convert_assistant_message(content: Any) -> list[dict[str, Any]]:
    if not isinstance(content, list):
        return [{"role": "assistant", "content": _map_content(content)}]

    content = [b for b in content if isinstance(b, Mapping)]

    tool_use_blocks = [b for b in content if b.get("type") == "tool_use"]
    if not tool_use_blocks:
        return [{"role": "assistant", "content": _map_content(content)}]

    text_blocks = [b.get("text") or "" for b in content if b.get("type") == "text"]
    thinking_blocks = [b.get("thinking") or "" for b in content if b.get("type") == "thinking"]
    # No separate thinking channel upstream, so it rides along in content.
    all_text = "\n\n".join(text_blocks + thinking_blocks)

    return [{
        "role": "assistant",
        "content": all_text or None,
        "tool_calls": [
            {
                "id": block.get("id", ""),
                "type": "function",
                "function": {
                    "name": block.get("name", ""),
                    "arguments": _serialize_tool_input(block.get("input")),
                },
            }
            for block in tool_use_blocks
        ],
    }]


def _convert_messages(
    messages: list[Mapping[str, Any]], system: Any
) -> list[dict[str, Any]]:
    converted = _convert_system_to_openai(system)
    for message in messages:
        if not isinstance(message, Mapping):
            logger.debug("Dropping non-object message of type %s", type(message).__name__)
            continue
        if message.get("role") == "assistant":
            converted.extend(_convert_assistant_message(message.get("content")))
        else:
            converted.extend(_convert_user_message(message.get("content")))
    return converted


def _convert_tools(tools: Optional[list[Mapping[str, Any]]]) -> list[dict[str, Any]] | None:
    """Convert Anthropic tools to function tools.

    Anthropic: {"name": "...", "description": "...", "input_schema": {...}}
    Chat: {"type": "function", "function": {"name", "description", "parameters"}}
    """
    if tools is None:
        return None
    converted = []
    for tool in tools:
        function: dict[str, Any] = {"name": tool.get("name", "")}
        if "description" in tool:
            function["description"] = tool["description"]
        function["parameters"] = tool.get("input_schema")
        converted.append({"type": "function", "function": function})
    return converted


def _convert_tool_choice(tool_choice: Any) -> str | dict[str, Any] | None:
    """Convert Anthropic tool_choice to the chat format.

    Anthropic: {"type": "auto" | "any" | "none"} | {"type": "tool", "name": "..."}
    Chat: "auto" | "required" | "none" | {"type": "function", "function": {"name": "..."}}
    """
    if not tool_choice:
        return None

    if isinstance(tool_choice, str):
        choice_type, name = tool_choice, None
    elif isinstance(tool_choice, Mapping):
        choice_type, name = tool_choice.get("type"), tool_choice.get("name")
    else:
        return None

    if choice_type == "auto":
        return "auto"
    if choice_type == "any":
        return "required"
    if choice_type == "tool":
        if name:
            return {"type": "function", "function": {"name": name}}
        return None
    if choice_type == "none":
        return "none"
    return None


def _reasoning_effort(payload: Mapping[str, Any], thinking_mode: Optional[bool], default: Optional[str]) -> Optional[str]:
    thinking = payload.get("thinking")
    budget = thinking.get("budget_tokens") if isinstance(thinking, Mapping) else None
    if isinstance(budget, (int, float)) and budget > 0:
        return MAX_REASONING_EFFORT
    # Thinking-mode models already reason; sending a default would double-signal.
    if thinking_mode is not True and default:
        return default
    return None


def messages_to_chat_completions(
    payload: AnthropicMessagesPayload,
    *,
    anthropic_beta: Optional[str] = None,
    registry: ModelCapabilityRegistry = DEFAULT_REGISTRY,
    variants: Mapping[str, frozenset[str]] = MODEL_VARIANTS,
) -> ChatCompletionsPayload:
    """Translate an Anthropic Messages request to a Copilot chat completion request.

    The caller is expected to have checked that ``model`` and ``messages``
    are present. Missing optional fields are omitted from the result.

    Args:
        payload: Anthropic Messages API request body
        anthropic_beta: Raw ``anthropic-beta`` header, used for variant routing
        registry: Capability registry deciding cache hints and reasoning effort
        variants: Model variant table

    Returns:
        Chat completions request body

    Raises:
        InvalidRequestError: ``messages`` is present but not a list.
    """
    raw_messages = payload.get("messages")
    if raw_messages is not None and not isinstance(raw_messages, list):
        raise InvalidRequestError("messages must be an array", code="invalid_messages")

    model = apply_model_variant(
        payload.get("model", ""), payload, anthropic_beta, variants=variants
    )
    capabilities = registry.lookup(model)
    enable_cache_control = capabilities.enable_cache_control is True

    messages = _convert_messages(raw_messages or [], payload.get("system"))
    if enable_cache_control:
        for message in messages:
            if message["role"] == "system":
                message["copilot_cache_control"] = dict(EPHEMERAL_CACHE_CONTROL)
                break

    tools = _convert_tools(payload.get("tools"))
    # Single cache boundary after the last tool definition.
    if enable_cache_control and tools:
        tools[-1]["copilot_cache_control"] = dict(EPHEMERAL_CACHE_CONTROL)

    result: dict[str, Any] = {"model": model, "messages": messages}

    if "max_tokens" in payload:
        result["max_tokens"] = payload["max_tokens"]
    if payload.get("stop_sequences") is not None:
        result["stop"] = payload["stop_sequences"]
    for param in ("stream", "temperature", "top_p"):
        if payload.get(param) is not None:
            result[param] = payload[param]

    metadata = payload.get("metadata")
    if isinstance(metadata, Mapping) and metadata.get("user_id") is not None:
        result["user"] = metadata["user_id"]

    if tools is not None:
        result["tools"] = tools
    tool_choice = _convert_tool_choice(payload.get("tool_choice"))
    if tool_choice is not None:
        result["tool_choice"] = tool_choice

    result["snippy"] = {"enabled": False}

    reasoning_effort = _reasoning_effort(
        payload, capabilities.thinking_mode, capabilities.default_reasoning_effort
    )
    if reasoning_effort:
        result["reasoning_effort"] = reasoning_effort

    if "top_k" in payload:
        logger.debug("top_k=%s has no chat completion equivalent, ignoring", payload["top_k"])

    return result


# =============================================================================
# Chat completion -> Anthropic Messages
# =============================================================================


def _convert_stop_reason(finish_reason: Optional[str]) -> Optional[str]:
    """Convert a chat finish_reason to an Anthropic stop_reason.

    Chat: stop, length, tool_calls, content_filter, function_call
    Anthropic: end_turn, max_tokens, tool_use, refusal
    """
    if finish_reason is None:
        return None
    return _STOP_REASONS.get(finish_reason, "end_turn")


def _merge_finish_reason(choices: list[Mapping[str, Any]]) -> Optional[str]:
    """Pick one finish reason across choices.

    Starts from the first choice; a later choice overwrites when it reports
    tool_calls or when the running reason is only "stop".
    """
    stop_reason = choices[0].get("finish_reason") if choices else None
    for choice in choices:
        finish_reason = choice.get("finish_reason")
        if finish_reason == "tool_calls" or stop_reason == "stop":
            stop_reason = finish_reason
    return stop_reason


def _text_blocks(content: Any) -> list[dict[str, Any]]:
    if isinstance(content, str):
        return [{"type": "text", "text": content}]
    if isinstance(content, list):
        return [
            {"type": "text", "text": part.get("text", "")}
            for part in content
            if part.get("type") == "text"
        ]
    return []


def _parse_tool_arguments(arguments: Any) -> Any:
    if not isinstance(arguments, str):
        return arguments if arguments is not None else {}
    try:
        return json.loads(arguments) if arguments else {}
    except json.JSONDecodeError:
        logger.warning("Tool call arguments are not valid JSON, passing through raw")
        return {"raw": arguments}


def _tool_use_blocks(tool_calls: Any) -> list[dict[str, Any]]:
    if not tool_calls:
        return []
    blocks = []
    for call in tool_calls:
        function = call.get("function") or {}
        blocks.append({
            "type": "tool_use",
            "id": call.get("id", ""),
            "name": function.get("name", ""),
            "input": _parse_tool_arguments(function.get("arguments")),
        })
    return blocks


def convert_usage(usage: Optional[Mapping[str, Any]]) -> AnthropicUsage:
    """Convert chat usage to Anthropic usage.

    Cached prompt tokens are reported separately and not counted as input.
    """
    usage = usage or {}
    details = usage.get("prompt_tokens_details") or {}
    cached_tokens = details.get("cached_tokens")

    converted = {
        "input_tokens": (usage.get("prompt_tokens") or 0) - (cached_tokens or 0),
        "output_tokens": usage.get("completion_tokens") or 0,
    }
    if cached_tokens is not None:
        converted["cache_read_input_tokens"] = cached_tokens
    return converted


def chat_completion_to_messages(payload: ChatCompletionResponse) -> AnthropicResponse:
    """Translate a chat completion response to an Anthropic Messages response.

    Text from every choice comes first (in encounter order), then every tool
    call. Upstream never produces thinking, so no thinking blocks are emitted.

    Args:
        payload: Chat completions response body

    Returns:
        Anthropic Messages response body
    """
    choices = payload.get("choices") or []

    text_blocks: list[dict[str, Any]] = []
    tool_use_blocks: list[dict[str, Any]] = []
    for choice in choices:
        message = choice.get("message") or {}
        text_blocks.extend(_text_blocks(message.get("content")))
        tool_use_blocks.extend(_tool_use_blocks(message.get("tool_calls")))

    return {
        "id": payload.get("id", ""),
        "type": "message",
        "role": "assistant",
        "model": payload.get("model", ""),
        "content": text_blocks + tool_use_blocks,
        "stop_reason": _convert_stop_reason(_merge_finish_reason(choices)),
        "stop_sequence": None,
        "usage": convert_usage(payload.get("usage")),
    }
