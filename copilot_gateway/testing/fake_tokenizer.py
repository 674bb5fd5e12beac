"""Deterministic tokenizer for token counting tests."""

from __future__ import annotations

from typing import Any, Mapping


class FakeTokenizer:
    """Tokenizer returning fixed counts and recording what it was asked."""

    def __init__(self, input_tokens: int = 100, output_tokens: int = 0) -> None:
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.calls: list[tuple[Mapping[str, Any], Mapping[str, Any]]] = []

    def count(self, payload: Mapping[str, Any], model: Mapping[str, Any]) -> dict[str, int]:
        self.calls.append((payload, model))
        return {"input": self.input_tokens, "output": self.output_tokens}
