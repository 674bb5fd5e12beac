"""Model capability lookup and model id resolution."""

from .capabilities import (
    DEFAULT_REGISTRY,
    ModelCapabilityDescriptor,
    ModelCapabilityRegistry,
    get_model_config,
    is_thinking_mode_model,
)
from .identity import (
    MODEL_VARIANTS,
    apply_model_variant,
    canonicalize,
    find_model_with_fallback,
    is_claude_code_request,
    parse_beta_features,
    resolve_variant,
)

__all__ = [
    "DEFAULT_REGISTRY",
    "MODEL_VARIANTS",
    "ModelCapabilityDescriptor",
    "ModelCapabilityRegistry",
    "apply_model_variant",
    "canonicalize",
    "find_model_with_fallback",
    "get_model_config",
    "is_claude_code_request",
    "is_thinking_mode_model",
    "parse_beta_features",
    "resolve_variant",
]
