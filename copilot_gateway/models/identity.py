"""Model id normalization and variant routing.

Clients send ids like ``claude-sonnet-4-20250514`` or ``claude-opus-4-6``;
Copilot only knows ``claude-sonnet-4`` and ``claude-opus-4.6``. Some models
also have serving variants (``claude-opus-4.6-fast``, ``claude-opus-4.6-1m``)
selected by the ``speed`` body field or by ``anthropic-beta`` header tokens.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, Optional

FAST_MODE_BETA = "fast-mode-2026-02-01"
CONTEXT_1M_BETA = "context-1m-2025-08-07"
CLAUDE_CODE_BETA_PREFIX = "claude-code"

VARIANT_FAST = "fast"
VARIANT_1M = "1m"

MODEL_VARIANTS: dict[str, frozenset[str]] = {
    "claude-opus-4.6": frozenset({VARIANT_FAST, VARIANT_1M}),
}

# First match wins. Group 1 is the canonical id; the hyphenated minor version
# pattern also captures the minor in group 2.
_HYPHEN_MINOR_PATTERN = re.compile(r"^(claude-(?:sonnet|opus|haiku)-4)-(5|6)(?:-\d{8,})?$")
_DATED_SNAPSHOT_PATTERNS = (
    re.compile(r"^(claude-sonnet-4)-\d{8,}$"),
    re.compile(r"^(claude-opus-4)-\d{8,}$"),
    re.compile(r"^(claude-haiku-4)-\d{8,}$"),
    re.compile(r"^(claude-sonnet-4\.5)-\d{8,}$"),
    re.compile(r"^(claude-opus-4\.5)-\d{8,}$"),
    re.compile(r"^(claude-opus-4\.6)-\d{8,}$"),
    re.compile(r"^(claude-haiku-4\.5)-\d{8,}$"),
)

_VARIANT_SUFFIX_PATTERN = re.compile(r"-(fast|1m)$")


def canonicalize(model: str) -> str:
    """Strip dated snapshot suffixes and turn ``4-5`` style versions into ``4.5``.

    Ids that match no known pattern are returned unchanged.
    """
    match = _HYPHEN_MINOR_PATTERN.match(model)
    if match:
        return f"{match.group(1)}.{match.group(2)}"

    for pattern in _DATED_SNAPSHOT_PATTERNS:
        match = pattern.match(model)
        if match:
            return match.group(1)

    return model


def parse_beta_features(anthropic_beta: Optional[str]) -> frozenset[str]:
    """Parse a comma-separated ``anthropic-beta`` header into a set of tokens."""
    if not anthropic_beta:
        return frozenset()
    return frozenset(
        token for token in (part.strip() for part in anthropic_beta.split(",")) if token
    )


def resolve_variant(
    canonical_id: str,
    *,
    speed: Optional[str] = None,
    beta_features: Iterable[str] = (),
    variants: Mapping[str, frozenset[str]] = MODEL_VARIANTS,
) -> str:
    """Append at most one variant suffix to a canonical model id.

    Fast mode wins over the 1M context window when both are requested.
    """
    supported = variants.get(canonical_id)
    if not supported:
        return canonical_id

    features = frozenset(beta_features)

    if VARIANT_FAST in supported:
        if speed == "fast" or FAST_MODE_BETA in features:
            return f"{canonical_id}-{VARIANT_FAST}"

    if VARIANT_1M in supported:
        if CONTEXT_1M_BETA in features:
            return f"{canonical_id}-{VARIANT_1M}"

    return canonical_id


def apply_model_variant(
    model: str,
    payload: Mapping[str, Any],
    anthropic_beta: Optional[str] = None,
    *,
    variants: Mapping[str, frozenset[str]] = MODEL_VARIANTS,
) -> str:
    """Resolve the final upstream model id for an Anthropic request."""
    speed = payload.get("speed")
    return resolve_variant(
        canonicalize(model),
        speed=speed if isinstance(speed, str) else None,
        beta_features=parse_beta_features(anthropic_beta),
        variants=variants,
    )


def find_model_with_fallback(
    model_id: str, models: Optional[Iterable[Mapping[str, Any]]]
) -> Optional[Mapping[str, Any]]:
    """Find ``model_id`` in the upstream model list.

    A variant id (``-fast``/``-1m``) without its own entry falls back to the
    base model's entry.
    """
    if models is None:
        return None
    models = list(models)
    for model in models:
        if model.get("id") == model_id:
            return model

    base_model = _VARIANT_SUFFIX_PATTERN.sub("", model_id)
    if base_model != model_id:
        for model in models:
            if model.get("id") == base_model:
                return model
    return None


def is_claude_code_request(anthropic_beta: Optional[str]) -> bool:
    """Whether the beta header marks the request as coming from Claude Code."""
    return any(
        feature.startswith(CLAUDE_CODE_BETA_PREFIX)
        for feature in parse_beta_features(anthropic_beta)
    )
