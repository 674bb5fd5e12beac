"""Testing utilities for in-process gateway simulations."""

from .fake_tokenizer import FakeTokenizer
from .fake_upstream import (
    FAKE_COPILOT_BASE_URL,
    FAKE_COPILOT_HOST,
    FakeCopilot,
    UpstreamResponse,
    build_chat_chunk,
    build_model,
)

__all__ = [
    "FAKE_COPILOT_BASE_URL",
    "FAKE_COPILOT_HOST",
    "FakeCopilot",
    "FakeTokenizer",
    "UpstreamResponse",
    "build_chat_chunk",
    "build_model",
]
