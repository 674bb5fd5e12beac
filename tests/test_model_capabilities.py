"""Tests for the model capability registry."""

from copilot_gateway.models.capabilities import (
    DEFAULT_REGISTRY,
    EMPTY_DESCRIPTOR,
    ModelCapabilityDescriptor,
    ModelCapabilityRegistry,
    get_model_config,
    is_thinking_mode_model,
)


class TestLookup:
    """Lookup order: exact, longest prefix, vendor default, empty."""

    def test_exact_match(self):
        config = DEFAULT_REGISTRY.lookup("claude-opus-4.6")
        assert config.enable_cache_control is True
        assert config.default_reasoning_effort == "high"
        assert config.supported_reasoning_efforts == ("low", "medium", "high")
        assert config.supports_parallel_tool_calls is True

    def test_longest_prefix_wins(self):
        """gpt-5.2-codex-max must resolve to gpt-5.2-codex, not gpt-5."""
        config = DEFAULT_REGISTRY.lookup("gpt-5.2-codex-max")
        assert config.supported_reasoning_efforts == ("low", "medium", "high", "xhigh")

    def test_prefix_for_variant_id(self):
        config = DEFAULT_REGISTRY.lookup("claude-opus-4.6-fast")
        assert config.default_reasoning_effort == "high"

    def test_vendor_default_for_unknown_claude(self):
        config = DEFAULT_REGISTRY.lookup("claude-haiku-4.5")
        assert config.enable_cache_control is True
        assert config.supports_tool_choice is False
        assert config.default_reasoning_effort is None

    def test_unknown_model_gets_empty_descriptor(self):
        assert DEFAULT_REGISTRY.lookup("llama-3-70b") == EMPTY_DESCRIPTOR
        assert EMPTY_DESCRIPTOR.enable_cache_control is None

    def test_lookup_is_total_for_empty_id(self):
        assert DEFAULT_REGISTRY.lookup("") == EMPTY_DESCRIPTOR


class TestHelpers:
    def test_is_thinking_mode_model(self):
        assert is_thinking_mode_model("gpt-5") is True
        assert is_thinking_mode_model("o3-mini") is True
        assert is_thinking_mode_model("gpt-4o") is False
        assert is_thinking_mode_model("claude-sonnet-4") is False

    def test_get_model_config_with_custom_registry(self):
        registry = ModelCapabilityRegistry(
            {"custom": ModelCapabilityDescriptor(thinking_mode=True)}
        )
        assert get_model_config("custom-large", registry=registry).thinking_mode is True
        assert get_model_config("claude-sonnet-4", registry=registry) == EMPTY_DESCRIPTOR


class TestOverrides:
    """Config overrides produce a new registry; the original is untouched."""

    def test_override_merges_named_fields_only(self):
        registry = DEFAULT_REGISTRY.with_overrides(
            {"claude-opus-4.6": {"default_reasoning_effort": "medium"}}
        )
        config = registry.lookup("claude-opus-4.6")
        assert config.default_reasoning_effort == "medium"
        assert config.enable_cache_control is True
        assert DEFAULT_REGISTRY.lookup("claude-opus-4.6").default_reasoning_effort == "high"

    def test_override_adds_new_model(self):
        registry = DEFAULT_REGISTRY.with_overrides(
            {"grok-code-fast-1": {"supports_tool_choice": True, "supported_reasoning_efforts": ["low"]}}
        )
        assert "grok-code-fast-1" in registry
        assert "grok-code-fast-1" not in DEFAULT_REGISTRY
        config = registry.lookup("grok-code-fast-1")
        assert config.supports_tool_choice is True
        assert config.supported_reasoning_efforts == ("low",)

    def test_unknown_fields_are_ignored(self):
        descriptor = ModelCapabilityDescriptor.from_mapping({"bogus": 1, "thinking_mode": True})
        assert descriptor == ModelCapabilityDescriptor(thinking_mode=True)
