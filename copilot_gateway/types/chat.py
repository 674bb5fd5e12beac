"""Chat-completion wire types as accepted by the Copilot backend.

These follow the OpenAI Chat Completions format with the Copilot additions:
``copilot_cache_control`` on messages and tools, ``reasoning_effort`` and the
``snippy`` switch on the request.
"""

from typing import Any, Literal, Union

from typing_extensions import TypedDict


class CacheControl(TypedDict):
    """Prompt caching hint. Only ``{"type": "ephemeral"}`` is used."""
    type: Literal["ephemeral"]


class FunctionCall(TypedDict, total=False):
    """A function call within a tool call.

    Attributes:
        name: Name of the function to call. Can be None for streamed
            follow-up chunks where the name was already stated.
        arguments: JSON string with the call arguments. Streamed chunks
            carry fragments that concatenate to the full string.
    """
    name: str | None
    arguments: str | None


class ToolCall(TypedDict, total=False):
    """A tool call in a chat message.

    Attributes:
        id: Identifier matched by the ``tool_call_id`` of the tool result.
        type: Always "function".
        function: The function to call with its arguments.
        index: Position in the tool_calls array (streaming only).
    """
    id: str
    type: str
    function: FunctionCall
    index: int


class ContentPart(TypedDict, total=False):
    """A content part for multi-modal messages.

    Attributes:
        type: "text" or "image_url".
        text: Text content (for "text" parts).
        image_url: ``{"url": ...}`` with an http(s) or data URI.
    """
    type: str
    text: str
    image_url: dict[str, Any]


class ChatMessage(TypedDict, total=False):
    """A message in the flat role/content conversation.

    Attributes:
        role: "system", "user", "assistant" or "tool".
        content: String, list of ContentPart, or None when the assistant
            message only carries tool_calls.
        tool_calls: Tool calls requested by the assistant.
        tool_call_id: ID of the tool call a "tool" message answers.
        copilot_cache_control: Cache boundary marker.
    """
    role: str
    content: str | list[ContentPart] | None
    name: str
    tool_calls: list[ToolCall]
    tool_call_id: str
    copilot_cache_control: CacheControl


class FunctionDefinition(TypedDict, total=False):
    name: str
    description: str
    parameters: dict[str, Any]


class Tool(TypedDict, total=False):
    """A function tool declaration."""
    type: Literal["function"]
    function: FunctionDefinition
    copilot_cache_control: CacheControl


ToolChoice = Union[
    Literal["auto", "required", "none"],
    dict[str, Any],
]


class ChatCompletionsPayload(TypedDict, total=False):
    """Request body for ``POST /chat/completions``."""
    model: str
    messages: list[ChatMessage]
    max_tokens: int
    stop: list[str] | str
    stream: bool
    temperature: float
    top_p: float
    user: str
    tools: list[Tool]
    tool_choice: ToolChoice
    reasoning_effort: Literal["low", "medium", "high", "xhigh"]
    snippy: dict[str, bool]


class Delta(TypedDict, total=False):
    """A streamed delta of a choice."""
    role: str | None
    content: str | None
    tool_calls: list[ToolCall] | None


class Choice(TypedDict, total=False):
    """A choice in a chat completion response.

    Attributes:
        index: Zero-based index of this choice in the choices array.
        delta: Incremental content (streaming).
        message: Complete message (non-streaming).
        finish_reason: "stop", "length", "tool_calls", "content_filter"
            or None while the choice is still generating.
    """
    index: int
    delta: Delta | None
    message: ChatMessage | None
    finish_reason: str | None
    logprobs: dict[str, Any] | None


class Usage(TypedDict, total=False):
    """Token usage of a completion.

    ``prompt_tokens_details.cached_tokens`` counts prompt tokens served from
    the prompt cache; they are included in ``prompt_tokens``.
    """
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    prompt_tokens_details: dict[str, int] | None
    completion_tokens_details: dict[str, int] | None


class ChatCompletionChunk(TypedDict, total=False):
    """A streamed chunk of a chat completion response."""
    id: str
    object: str
    created: int
    model: str
    choices: list[Choice]
    usage: Usage | None


class ChatCompletionResponse(TypedDict, total=False):
    """A complete (non-streaming) chat completion response."""
    id: str
    object: str
    created: int
    model: str
    choices: list[Choice]
    usage: Usage | None
