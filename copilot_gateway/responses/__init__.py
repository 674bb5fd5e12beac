"""Responses API passthrough support.

Payloads are forwarded to the Copilot ``/responses`` endpoint unchanged; this
package only inspects them to pick the upstream request headers.
"""

from .passthrough import VISION_INPUT_TYPES, has_vision_input, is_agent_call

__all__ = [
    "VISION_INPUT_TYPES",
    "has_vision_input",
    "is_agent_call",
]
