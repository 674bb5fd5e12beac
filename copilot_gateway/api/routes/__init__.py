"""API routes for the gateway."""

from .messages import count_tokens_endpoint, messages_endpoint
from .models import list_models
from .responses import responses_endpoint

__all__ = [
    "count_tokens_endpoint",
    "list_models",
    "messages_endpoint",
    "responses_endpoint",
]
