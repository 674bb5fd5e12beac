"""Anthropic Messages API translation helpers.

Translates between the Anthropic Messages API and the Copilot chat
completions API, plus token count estimation for the count_tokens endpoint.
"""

from .stream_adapter import (
    ChatToMessagesStreamAdapter,
    adapt_chat_stream_to_messages,
    generate_message_id,
)
from .token_counter import TokenCounter
from .tokenizer import TiktokenTokenizer
from .translator import chat_completion_to_messages, messages_to_chat_completions

__all__ = [
    "messages_to_chat_completions",
    "chat_completion_to_messages",
    "ChatToMessagesStreamAdapter",
    "adapt_chat_stream_to_messages",
    "generate_message_id",
    "TiktokenTokenizer",
    "TokenCounter",
]
