"""Copilot gateway: Anthropic Messages API on top of Copilot chat completions."""

__version__ = "0.1.0"
