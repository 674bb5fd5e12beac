"""Core exceptions for the gateway."""

from typing import Optional


class ProxyError(Exception):
    """Base exception for gateway errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UpstreamError(ProxyError):
    """The Copilot backend answered with a non-success status.

    Not retried; routes surface it to the client with the upstream status.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        body: Optional[bytes] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body or b""

    def body_text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class ConfigurationError(ProxyError):
    """Raised when there's an issue with the configuration."""
    pass


class ModelNotFoundError(ProxyError):
    """Raised when a requested model is not in the upstream model list."""
    pass


class InvalidRequestError(ProxyError):
    """Raised when an incoming request is invalid."""

    def __init__(self, message: str, code: str = "invalid_request") -> None:
        super().__init__(message)
        self.code = code
