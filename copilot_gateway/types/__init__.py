"""Type definitions for the gateway."""

from .anthropic import (
    AnthropicAssistantContentBlock,
    AnthropicMessage,
    AnthropicMessagesPayload,
    AnthropicResponse,
    AnthropicStreamEvent,
    AnthropicTool,
    AnthropicUsage,
    AnthropicUserContentBlock,
)
from .chat import (
    ChatCompletionChunk,
    ChatCompletionResponse,
    ChatCompletionsPayload,
    ChatMessage,
    Choice,
    ContentPart,
    Delta,
    FunctionCall,
    Tool,
    ToolCall,
    Usage,
)
from .model import Model, ModelsResponse

__all__ = [
    "AnthropicAssistantContentBlock",
    "AnthropicMessage",
    "AnthropicMessagesPayload",
    "AnthropicResponse",
    "AnthropicStreamEvent",
    "AnthropicTool",
    "AnthropicUsage",
    "AnthropicUserContentBlock",
    "ChatCompletionChunk",
    "ChatCompletionResponse",
    "ChatCompletionsPayload",
    "ChatMessage",
    "Choice",
    "ContentPart",
    "Delta",
    "FunctionCall",
    "Model",
    "ModelsResponse",
    "Tool",
    "ToolCall",
    "Usage",
]
