"""Header decisions for Responses API payloads."""

from typing import Any, Mapping

VISION_INPUT_TYPES = frozenset({"input_image", "image", "image_url", "image_file"})


def _input_items(payload: Mapping[str, Any]) -> list[Any]:
    items = payload.get("input")
    if isinstance(items, list):
        return items
    # A bare string input is a single user turn with no parts.
    return []


def has_vision_input(payload: Mapping[str, Any]) -> bool:
    """True when any input item carries an image-like content part."""
    for item in _input_items(payload):
        if not isinstance(item, Mapping):
            continue
        content = item.get("content")
        if not isinstance(content, list):
            continue
        for part in content:
            if isinstance(part, Mapping) and part.get("type") in VISION_INPUT_TYPES:
                return True
    return False


def is_agent_call(payload: Mapping[str, Any]) -> bool:
    """True when the conversation already contains an assistant turn."""
    return any(
        isinstance(item, Mapping) and item.get("role") == "assistant"
        for item in _input_items(payload)
    )
