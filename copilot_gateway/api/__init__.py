"""API module for the gateway."""

from .routes import count_tokens_endpoint, list_models, messages_endpoint, responses_endpoint

__all__ = [
    "count_tokens_endpoint",
    "list_models",
    "messages_endpoint",
    "responses_endpoint",
]
