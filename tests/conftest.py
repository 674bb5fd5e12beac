"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

from typing import Any, Generator

import httpx
import pytest
from fastapi.testclient import TestClient

from copilot_gateway.config_loader import CopilotSettings, GatewaySettings
from copilot_gateway.core.registry import GatewayState, set_state
from copilot_gateway.core.upstream_transport import (
    clear_upstream_transports,
    register_upstream_transport,
)
from copilot_gateway.main import create_app
from copilot_gateway.testing import (
    FAKE_COPILOT_BASE_URL,
    FAKE_COPILOT_HOST,
    FakeCopilot,
    FakeTokenizer,
)


# =============================================================================
# Transport Registry Fixtures
# =============================================================================


@pytest.fixture
def clear_transport_registry() -> Generator[None, None, None]:
    """Clear upstream transport registry after test.

    Use this fixture in tests that register fake transports.
    """
    yield
    clear_upstream_transports()


@pytest.fixture
def fake_copilot(clear_transport_registry) -> FakeCopilot:
    """A FakeCopilot mounted at FAKE_COPILOT_BASE_URL."""
    upstream = FakeCopilot()
    register_upstream_transport(FAKE_COPILOT_HOST, httpx.ASGITransport(app=upstream.app))
    return upstream


# =============================================================================
# Gateway Fixtures
# =============================================================================


def build_test_settings(**overrides: Any) -> GatewaySettings:
    copilot = CopilotSettings(token="test-token", base_url=FAKE_COPILOT_BASE_URL, timeout=5.0)
    values: dict[str, Any] = {"copilot": copilot}
    values.update(overrides)
    return GatewaySettings(**values)


@pytest.fixture
def fake_tokenizer() -> FakeTokenizer:
    return FakeTokenizer()


@pytest.fixture
def gateway_state(fake_tokenizer: FakeTokenizer) -> Generator[GatewayState, None, None]:
    state = GatewayState(build_test_settings(), tokenizer=fake_tokenizer)
    yield state
    set_state(None)


@pytest.fixture
def gateway_client(fake_copilot: FakeCopilot, gateway_state: GatewayState) -> TestClient:
    """TestClient for an app wired to the fake upstream."""
    return TestClient(create_app(state=gateway_state))
