"""Copilot backend client."""

from .client import CopilotClient, UpstreamStream, copilot_headers, format_httpx_error

__all__ = [
    "CopilotClient",
    "UpstreamStream",
    "copilot_headers",
    "format_httpx_error",
]
