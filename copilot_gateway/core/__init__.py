"""Core module initialization."""

from .exceptions import (
    ConfigurationError,
    InvalidRequestError,
    ModelNotFoundError,
    ProxyError,
    UpstreamError,
)
from .sse import SSEDecoder, SSEEvent, detect_sse_stream_error, format_sse_event, iter_sse_events

__all__ = [
    "ConfigurationError",
    "InvalidRequestError",
    "ModelNotFoundError",
    "ProxyError",
    "SSEDecoder",
    "SSEEvent",
    "UpstreamError",
    "detect_sse_stream_error",
    "format_sse_event",
    "iter_sse_events",
]
