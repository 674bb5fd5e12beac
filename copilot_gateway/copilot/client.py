"""HTTP client for the Copilot backend (chat completions, responses, models)."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, AsyncIterator, Mapping, Optional, Union

import httpx

from ..config_loader import CopilotSettings
from ..core.exceptions import UpstreamError
from ..core.upstream_transport import get_upstream_transport
from ..responses import has_vision_input, is_agent_call
from ..types.chat import ChatCompletionResponse, ChatCompletionsPayload
from ..types.model import ModelsResponse

logger = logging.getLogger("copilot-gateway")

COPILOT_VERSION = "0.26.7"
EDITOR_PLUGIN_VERSION = f"copilot-chat/{COPILOT_VERSION}"
USER_AGENT = f"GitHubCopilotChat/{COPILOT_VERSION}"
API_VERSION = "2025-04-01"
INTEGRATION_ID = "vscode-chat"

AGENT_ROLES = frozenset({"assistant", "tool"})


def copilot_headers(settings: CopilotSettings, vision: bool = False) -> dict[str, str]:
    """Headers every Copilot API call carries."""
    headers = {
        "Authorization": f"Bearer {settings.token}",
        "content-type": "application/json",
        "copilot-integration-id": INTEGRATION_ID,
        "editor-version": f"vscode/{settings.vscode_version}",
        "editor-plugin-version": EDITOR_PLUGIN_VERSION,
        "user-agent": USER_AGENT,
        "openai-intent": "conversation-panel",
        "x-github-api-version": API_VERSION,
        "x-request-id": str(uuid.uuid4()),
        "x-vscode-user-agent-library-version": "electron-fetch",
    }
    if vision:
        headers["copilot-vision-request"] = "true"
    return headers


def chat_has_vision(payload: Mapping[str, Any]) -> bool:
    for message in payload.get("messages") or []:
        content = message.get("content")
        if isinstance(content, list) and any(
            isinstance(part, Mapping) and part.get("type") == "image_url" for part in content
        ):
            return True
    return False


def chat_is_agent_call(payload: Mapping[str, Any]) -> bool:
    return any(message.get("role") in AGENT_ROLES for message in payload.get("messages") or [])


class UpstreamStream:
    """An open streaming upstream response.

    Iterating yields raw body bytes in arrival order. The underlying
    connection is released once iteration ends or ``aclose`` is called.
    """

    def __init__(self, response: httpx.Response, client: httpx.AsyncClient, url: str) -> None:
        self.response = response
        self.status_code = response.status_code
        self.headers = response.headers
        self._client = client
        self._url = url
        self._closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self.response.aiter_bytes():
                if chunk:
                    yield chunk
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.debug(f"Closing stream for {self._url}")
        await self.response.aclose()
        await self._client.aclose()


class CopilotClient:
    """Talks to the Copilot API with a pre-issued bearer token."""

    def __init__(self, settings: CopilotSettings) -> None:
        self.settings = settings
        self.base_url = settings.resolved_base_url

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def _post(
        self,
        path: str,
        payload: Mapping[str, Any],
        headers: dict[str, str],
    ) -> Union[dict[str, Any], UpstreamStream]:
        url = self._url(path)
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        transport = get_upstream_transport(url)

        if payload.get("stream"):
            stream_timeout = httpx.Timeout(
                connect=self.settings.timeout,
                read=None,
                write=self.settings.timeout,
                pool=self.settings.timeout,
            )
            client = httpx.AsyncClient(timeout=stream_timeout, transport=transport)
            try:
                request = client.build_request("POST", url, headers=headers, content=body)
                resp = await client.send(request, stream=True)
            except Exception as exc:
                logger.error(f"Failed to send streaming request to {url}: {exc} (type: {exc.__class__.__name__})")
                await client.aclose()
                raise
            if resp.status_code >= 400:
                data = await resp.aread()
                await resp.aclose()
                await client.aclose()
                logger.error(f"Streaming request to {url} returned error status {resp.status_code}")
                raise UpstreamError(
                    f"Copilot request to {path} failed with status {resp.status_code}",
                    status_code=resp.status_code,
                    body=data,
                )
            logger.info(f"Streaming request to {url} successful, status {resp.status_code}")
            return UpstreamStream(resp, client, url)

        async with httpx.AsyncClient(timeout=self.settings.timeout, transport=transport) as client:
            resp = await client.post(url, headers=headers, content=body)
        logger.debug(f"Received response from {url}: status {resp.status_code}")
        if resp.status_code >= 400:
            logger.error(f"Request to {url} returned error status {resp.status_code}")
            raise UpstreamError(
                f"Copilot request to {path} failed with status {resp.status_code}",
                status_code=resp.status_code,
                body=resp.content,
            )
        return resp.json()

    async def create_chat_completions(
        self, payload: ChatCompletionsPayload
    ) -> Union[ChatCompletionResponse, UpstreamStream]:
        """POST /chat/completions.

        Returns the parsed completion, or an ``UpstreamStream`` of SSE bytes
        when ``payload["stream"]`` is true.
        """
        headers = copilot_headers(self.settings, vision=chat_has_vision(payload))
        headers["X-Initiator"] = "agent" if chat_is_agent_call(payload) else "user"
        return await self._post("/chat/completions", payload, headers)

    async def create_responses(
        self, payload: Mapping[str, Any]
    ) -> Union[dict[str, Any], UpstreamStream]:
        """POST /responses with the payload forwarded as is."""
        headers = copilot_headers(self.settings, vision=has_vision_input(payload))
        headers["X-Initiator"] = "agent" if is_agent_call(payload) else "user"
        return await self._post("/responses", payload, headers)

    async def get_models(self) -> ModelsResponse:
        """GET /models."""
        url = self._url("/models")
        transport = get_upstream_transport(url)
        async with httpx.AsyncClient(timeout=self.settings.timeout, transport=transport) as client:
            resp = await client.get(url, headers=copilot_headers(self.settings))
        if resp.status_code >= 400:
            raise UpstreamError(
                f"Failed to get models: status {resp.status_code}",
                status_code=resp.status_code,
                body=resp.content,
            )
        return resp.json()


def format_httpx_error(exc: httpx.HTTPError, url: Optional[str] = None) -> str:
    """Produce a detailed, user-facing description of an httpx error."""
    parts = [exc.__class__.__name__]
    message = str(exc).strip()
    if message:
        parts.append(message)

    try:
        request = exc.request
    except RuntimeError:
        request = None
    if request is not None:
        parts.append(f"request={request.method} {request.url}")
    elif url:
        parts.append(f"url={url}")

    return "; ".join(parts)
