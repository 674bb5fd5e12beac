"""Static per-model capability table.

Lookup order for a model id:
1. exact key
2. longest key the id starts with (``gpt-5.2-codex-max`` -> ``gpt-5.2-codex``)
3. vendor default (any ``claude*`` id gets cache control)
4. empty descriptor
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Literal, Mapping, Optional

logger = logging.getLogger("copilot-gateway")

ReasoningEffort = Literal["low", "medium", "high", "xhigh"]


@dataclass(frozen=True)
class ModelCapabilityDescriptor:
    """Capabilities that drive request shaping for one model family.

    Attributes:
        thinking_mode: Model routes through native thinking (reasoning) mode.
        enable_cache_control: Attach ``copilot_cache_control`` hints.
        default_reasoning_effort: Effort applied when the client sends none.
        supported_reasoning_efforts: Ordered effort levels the model accepts.
        supports_tool_choice: Model honours ``tool_choice``.
        supports_parallel_tool_calls: Model can emit several tool calls at once.
    """

    thinking_mode: Optional[bool] = None
    enable_cache_control: Optional[bool] = None
    default_reasoning_effort: Optional[ReasoningEffort] = None
    supported_reasoning_efforts: Optional[tuple[ReasoningEffort, ...]] = None
    supports_tool_choice: Optional[bool] = None
    supports_parallel_tool_calls: Optional[bool] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ModelCapabilityDescriptor":
        """Build a descriptor from a config mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                logger.warning("Ignoring unknown model capability field: %s", key)
                continue
            if key == "supported_reasoning_efforts" and value is not None:
                value = tuple(value)
            values[key] = value
        return cls(**values)


EMPTY_DESCRIPTOR = ModelCapabilityDescriptor()

MODEL_CONFIGS: dict[str, ModelCapabilityDescriptor] = {
    "claude-sonnet-4": ModelCapabilityDescriptor(
        enable_cache_control=True,
        supports_tool_choice=False,
        supports_parallel_tool_calls=False,
    ),
    "claude-sonnet-4.5": ModelCapabilityDescriptor(
        enable_cache_control=True,
        supports_tool_choice=False,
        supports_parallel_tool_calls=False,
    ),
    "claude-opus-4.5": ModelCapabilityDescriptor(
        enable_cache_control=True,
        supports_tool_choice=False,
        supports_parallel_tool_calls=False,
    ),
    "claude-opus-4.6": ModelCapabilityDescriptor(
        enable_cache_control=True,
        default_reasoning_effort="high",
        supported_reasoning_efforts=("low", "medium", "high"),
        supports_tool_choice=False,
        supports_parallel_tool_calls=True,
    ),
    "gpt-4o": ModelCapabilityDescriptor(
        supports_tool_choice=True,
        supports_parallel_tool_calls=True,
    ),
    "gpt-4.1": ModelCapabilityDescriptor(
        supports_tool_choice=True,
        supports_parallel_tool_calls=True,
    ),
    "gpt-5": ModelCapabilityDescriptor(
        thinking_mode=True,
        supports_tool_choice=True,
        supports_parallel_tool_calls=True,
    ),
    "gpt-5.1-codex": ModelCapabilityDescriptor(
        thinking_mode=True,
        default_reasoning_effort="high",
        supported_reasoning_efforts=("low", "medium", "high"),
        supports_tool_choice=True,
        supports_parallel_tool_calls=True,
    ),
    "gpt-5.2-codex": ModelCapabilityDescriptor(
        thinking_mode=True,
        default_reasoning_effort="high",
        supported_reasoning_efforts=("low", "medium", "high", "xhigh"),
        supports_tool_choice=True,
        supports_parallel_tool_calls=True,
    ),
    "o3-mini": ModelCapabilityDescriptor(
        thinking_mode=True,
        supports_tool_choice=True,
    ),
    "o4-mini": ModelCapabilityDescriptor(
        thinking_mode=True,
        supports_tool_choice=True,
    ),
}

VENDOR_DEFAULTS: dict[str, ModelCapabilityDescriptor] = {
    "claude": ModelCapabilityDescriptor(
        enable_cache_control=True,
        supports_tool_choice=False,
    ),
}


class ModelCapabilityRegistry:
    """Read-only model id -> capability descriptor lookup."""

    def __init__(
        self,
        configs: Mapping[str, ModelCapabilityDescriptor],
        vendor_defaults: Optional[Mapping[str, ModelCapabilityDescriptor]] = None,
    ) -> None:
        self._configs = dict(configs)
        self._vendor_defaults = dict(vendor_defaults or {})
        # Longest keys first so the most specific family wins.
        self._prefix_order = sorted(self._configs, key=len, reverse=True)

    def lookup(self, model_id: str) -> ModelCapabilityDescriptor:
        config = self._configs.get(model_id)
        if config is not None:
            return config

        for key in self._prefix_order:
            if model_id.startswith(key):
                return self._configs[key]

        for vendor, default in self._vendor_defaults.items():
            if model_id.startswith(vendor):
                return default

        return EMPTY_DESCRIPTOR

    def with_overrides(
        self, overrides: Mapping[str, Mapping[str, Any]]
    ) -> "ModelCapabilityRegistry":
        """Return a new registry with config entries merged over this one.

        An override for an existing key replaces only the fields it names.
        """
        merged = dict(self._configs)
        for model_id, raw in overrides.items():
            update = ModelCapabilityDescriptor.from_mapping(raw or {})
            base = merged.get(model_id)
            if base is None:
                merged[model_id] = update
                continue
            changed = {
                f.name: getattr(update, f.name)
                for f in fields(update)
                if f.name in (raw or {})
            }
            merged[model_id] = replace(base, **changed)
        return ModelCapabilityRegistry(merged, self._vendor_defaults)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._configs


DEFAULT_REGISTRY = ModelCapabilityRegistry(MODEL_CONFIGS, VENDOR_DEFAULTS)


def get_model_config(
    model_id: str, registry: ModelCapabilityRegistry = DEFAULT_REGISTRY
) -> ModelCapabilityDescriptor:
    """Look up the capability descriptor for ``model_id``."""
    return registry.lookup(model_id)


def is_thinking_mode_model(
    model_id: str, registry: ModelCapabilityRegistry = DEFAULT_REGISTRY
) -> bool:
    """Whether the model natively routes through thinking mode."""
    return registry.lookup(model_id).thinking_mode is True
