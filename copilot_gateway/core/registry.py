"""Gateway state registry for breaking circular imports.

This module holds the gateway state so that routes can import it without
causing circular imports with the main module.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Mapping, Optional

from ..config_loader import GatewaySettings
from ..copilot import CopilotClient
from ..messages.token_counter import TokenCounter
from ..messages.tokenizer import Tokenizer
from ..models.capabilities import DEFAULT_REGISTRY, ModelCapabilityRegistry
from ..models.identity import MODEL_VARIANTS
from ..types.model import ModelsResponse

logger = logging.getLogger("copilot-gateway")


class GatewayState:
    """Everything a request handler needs, built once per app."""

    def __init__(
        self,
        settings: GatewaySettings,
        *,
        client: Optional[CopilotClient] = None,
        tokenizer: Optional[Tokenizer] = None,
    ) -> None:
        self.settings = settings
        self.client = client or CopilotClient(settings.copilot)
        self.registry: ModelCapabilityRegistry = DEFAULT_REGISTRY.with_overrides(
            settings.model_configs
        )
        variants = dict(MODEL_VARIANTS)
        variants.update(settings.model_variants)
        self.variants: Mapping[str, frozenset[str]] = variants
        self.token_counter = TokenCounter(
            tokenizer,
            settings.token_counting,
            registry=self.registry,
            variants=self.variants,
        )
        self._models: Optional[ModelsResponse] = None
        self._models_lock = asyncio.Lock()

    async def get_models(self) -> ModelsResponse:
        """Upstream model list, fetched on first use and cached afterwards.

        A failed fetch is not cached; the next call retries.
        """
        if self._models is not None:
            return self._models
        async with self._models_lock:
            if self._models is None:
                self._models = await self.client.get_models()
                logger.info(
                    "Cached %d upstream models", len(self._models.get("data") or [])
                )
        return self._models


# Global gateway state - set by create_app during initialization
state: Optional[GatewayState] = None


def set_state(state_instance: Optional[GatewayState]) -> None:
    """Set the global gateway state."""
    global state
    state = state_instance


def get_state() -> GatewayState:
    """Get the global gateway state."""
    if state is None:
        raise RuntimeError("Gateway state not initialized. Did you call set_state?")
    return state
