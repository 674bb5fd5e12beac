"""Anthropic Messages API wire types (the client-facing protocol).

Content blocks are a tagged union discriminated by ``type``.
"""

from typing import Any, Literal, Union

from typing_extensions import NotRequired, TypedDict


class AnthropicTextBlock(TypedDict):
    type: Literal["text"]
    text: str


class AnthropicThinkingBlock(TypedDict):
    """Model-internal reasoning. Has no chat-completion equivalent."""
    type: Literal["thinking"]
    thinking: str
    signature: NotRequired[str]


class AnthropicImageSource(TypedDict):
    type: Literal["base64"]
    media_type: str
    data: str


class AnthropicImageBlock(TypedDict):
    type: Literal["image"]
    source: AnthropicImageSource


class AnthropicToolUseBlock(TypedDict):
    type: Literal["tool_use"]
    id: str
    name: str
    input: dict[str, Any]


class AnthropicToolResultBlock(TypedDict):
    """Result of a tool call, referencing the ``tool_use`` block by id."""
    type: Literal["tool_result"]
    tool_use_id: str
    content: Union[str, list[Union[AnthropicTextBlock, AnthropicImageBlock]]]
    is_error: NotRequired[bool]


AnthropicUserContentBlock = Union[
    AnthropicTextBlock,
    AnthropicImageBlock,
    AnthropicToolResultBlock,
]

AnthropicAssistantContentBlock = Union[
    AnthropicTextBlock,
    AnthropicThinkingBlock,
    AnthropicToolUseBlock,
]


class AnthropicMessage(TypedDict):
    role: Literal["user", "assistant"]
    content: Union[str, list[Union[AnthropicUserContentBlock, AnthropicAssistantContentBlock]]]


class AnthropicTool(TypedDict):
    name: str
    description: NotRequired[str]
    input_schema: dict[str, Any]


class AnthropicToolChoice(TypedDict):
    type: Literal["auto", "any", "tool", "none"]
    name: NotRequired[str]


class AnthropicThinking(TypedDict):
    type: Literal["enabled", "disabled"]
    budget_tokens: NotRequired[int]


class AnthropicMessagesPayload(TypedDict, total=False):
    """Request body for ``POST /v1/messages``."""
    model: str
    messages: list[AnthropicMessage]
    max_tokens: int
    system: Union[str, list[AnthropicTextBlock]]
    metadata: dict[str, Any]
    stop_sequences: list[str]
    stream: bool
    temperature: float
    top_p: float
    top_k: int
    tools: list[AnthropicTool]
    tool_choice: AnthropicToolChoice
    thinking: AnthropicThinking
    speed: str


class AnthropicUsage(TypedDict, total=False):
    """Token usage reported to the client.

    ``cache_read_input_tokens`` is present only when the backend reported a
    cached token count.
    """
    input_tokens: int
    output_tokens: int
    cache_read_input_tokens: int


class AnthropicResponse(TypedDict):
    """Response body for ``POST /v1/messages``."""
    id: str
    type: Literal["message"]
    role: Literal["assistant"]
    model: str
    content: list[Union[AnthropicTextBlock, AnthropicToolUseBlock]]
    stop_reason: Union[str, None]
    stop_sequence: None
    usage: AnthropicUsage


class AnthropicStreamEvent(TypedDict, total=False):
    """A streaming event (``message_start``, ``content_block_delta``, ...)."""
    type: str
    index: int
    message: dict[str, Any]
    content_block: dict[str, Any]
    delta: dict[str, Any]
    usage: dict[str, Any]
    error: dict[str, Any]
