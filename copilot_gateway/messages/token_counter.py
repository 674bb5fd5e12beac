"""Token count estimation for ``POST /v1/messages/count_tokens``.

Counting is advisory: every failure degrades to a placeholder count instead
of failing the request.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Mapping, Optional

from ..config_loader import TokenCountSettings
from ..core.exceptions import ModelNotFoundError
from ..models.capabilities import DEFAULT_REGISTRY, ModelCapabilityRegistry
from ..models.identity import MODEL_VARIANTS, find_model_with_fallback, is_claude_code_request
from ..types.model import Model
from .tokenizer import Tokenizer, TiktokenTokenizer
from .translator import messages_to_chat_completions

logger = logging.getLogger("copilot-gateway")

MCP_TOOL_PREFIX = "mcp__"


def _match_prefix(model: str, table: Mapping[str, Any]) -> Optional[Any]:
    for prefix in sorted(table, key=len, reverse=True):
        if model.startswith(prefix):
            return table[prefix]
    return None


class TokenCounter:
    """Estimates Anthropic-style input token counts for a Messages request."""

    def __init__(
        self,
        tokenizer: Optional[Tokenizer] = None,
        settings: Optional[TokenCountSettings] = None,
        *,
        registry: ModelCapabilityRegistry = DEFAULT_REGISTRY,
        variants: Mapping[str, frozenset[str]] = MODEL_VARIANTS,
    ) -> None:
        self.tokenizer = tokenizer or TiktokenTokenizer()
        self.settings = settings or TokenCountSettings()
        self.registry = registry
        self.variants = variants

    def _needs_tool_surcharge(
        self, tools: list[Mapping[str, Any]], anthropic_beta: Optional[str]
    ) -> bool:
        # Claude Code requests with MCP tools already carry the tool overhead.
        if is_claude_code_request(anthropic_beta):
            if any(str(tool.get("name", "")).startswith(MCP_TOOL_PREFIX) for tool in tools):
                return False
        return True

    def estimate(
        self,
        payload: Mapping[str, Any],
        models: Optional[Iterable[Model]],
        anthropic_beta: Optional[str] = None,
    ) -> int:
        """Estimate the input token count of an Anthropic Messages request.

        Args:
            payload: Anthropic Messages request body
            models: Upstream model metadata list (``/models`` data)
            anthropic_beta: Raw ``anthropic-beta`` header

        Returns:
            Token count, or the placeholder when the model is unknown or
            counting fails.
        """
        try:
            chat_payload = messages_to_chat_completions(
                payload,
                anthropic_beta=anthropic_beta,
                registry=self.registry,
                variants=self.variants,
            )
            selected_model = find_model_with_fallback(chat_payload["model"], models)
            if selected_model is None:
                raise ModelNotFoundError(f"Model {chat_payload['model']!r} is not in the upstream model list")

            counts = self.tokenizer.count(chat_payload, selected_model)
            input_tokens = counts["input"]
            output_tokens = counts["output"]

            # Surcharges and multipliers key off the model id the client sent.
            model = str(payload.get("model", ""))
            tools = payload.get("tools") or []
            if tools and self._needs_tool_surcharge(tools, anthropic_beta):
                input_tokens += _match_prefix(model, self.settings.tool_surcharges) or 0

            total = input_tokens + output_tokens
            multiplier = _match_prefix(model, self.settings.multipliers)
            if multiplier is not None:
                # Half-up rounding, not banker's rounding
                total = math.floor(total * multiplier + 0.5)

            logger.info("Token count: %s", total)
            return total
        except ModelNotFoundError as exc:
            logger.warning("%s, returning default token count", exc.message)
            return self.settings.placeholder
        except Exception as exc:
            logger.error("Error counting tokens: %s", exc, exc_info=True)
            return self.settings.placeholder
