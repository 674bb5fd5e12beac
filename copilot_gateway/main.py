"""FastAPI application factory for the Copilot gateway."""

import logging
import socket
from typing import Any, Mapping, Optional

from fastapi import FastAPI

from .api.routes import count_tokens_endpoint, list_models, messages_endpoint, responses_endpoint
from .config_loader import build_settings, load_config
from .core.registry import GatewayState, set_state
from .logging import setup_logging

logger = logging.getLogger("copilot-gateway")


def create_app(
    config: Optional[Mapping[str, Any]] = None,
    *,
    state: Optional[GatewayState] = None,
) -> FastAPI:
    """Factory function to create the FastAPI application.

    Args:
        config: Raw configuration mapping; loaded from disk when omitted.
        state: Prebuilt gateway state (tests inject a fake tokenizer this way).

    Returns:
        The configured FastAPI application instance.
    """
    if state is None:
        if config is None:
            config = load_config()
        state = GatewayState(build_settings(config))
    settings = state.settings

    setup_logging(settings.log_level)
    set_state(state)

    app = FastAPI(title="Copilot Gateway")
    app.state.gateway = state

    @app.on_event("startup")
    async def startup_event():
        host = settings.server.host
        port = settings.server.port
        logger.info("Copilot gateway starting up...")
        logger.info("Configured bind address %s:%s", host, port)
        if host == "0.0.0.0":
            hostname = socket.gethostname()
            logger.info("Reachable on local network at http://%s:%s", hostname, port)
        logger.info("Upstream: %s (account type %s)", state.client.base_url, settings.copilot.account_type)
        if not settings.copilot.token:
            logger.warning("No Copilot token configured; upstream calls will be rejected")

    app.post("/v1/messages")(messages_endpoint)
    app.post("/v1/messages/count_tokens")(count_tokens_endpoint)
    app.get("/v1/models")(list_models)

    # Conditionally register responses endpoint
    if settings.enable_responses_endpoint:
        app.post("/v1/responses")(responses_endpoint)
        logger.info("Responses endpoint enabled")
    else:
        logger.info("Responses endpoint is disabled in configuration")

    return app


__all__ = ["create_app"]
