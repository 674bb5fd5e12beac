"""Anthropic-compatible Messages API endpoints."""

import json
import logging
import time
import uuid
from typing import Any, AsyncIterator, Mapping, Optional, Union

import httpx
from fastapi import Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.requests import ClientDisconnect

from ...copilot import UpstreamStream, format_httpx_error
from ...core.exceptions import InvalidRequestError, UpstreamError
from ...core.registry import get_state
from ...messages import (
    ChatToMessagesStreamAdapter,
    chat_completion_to_messages,
    generate_message_id,
    messages_to_chat_completions,
)

logger = logging.getLogger("copilot-gateway")


def _anthropic_error_response(
    message: str,
    *,
    error_type: str = "invalid_request_error",
    status_code: int = 400,
    error_code: Optional[str] = None,
    param: Optional[str] = None,
) -> JSONResponse:
    error: dict[str, Any] = {"type": error_type, "message": message}
    if error_code:
        error["code"] = error_code
    if param:
        error["param"] = param
    payload = {"type": "error", "error": error}
    return JSONResponse(payload, status_code=status_code)


def upstream_error_response(exc: UpstreamError) -> JSONResponse:
    """Surface a non-success Copilot answer with its own status code."""
    detail = exc.body_text()
    message = f"{exc.message}: {detail}" if detail else exc.message
    return _anthropic_error_response(
        message,
        error_type="api_error",
        status_code=exc.status_code,
        error_code="upstream_error",
    )


async def read_json_object(
    request: Request, req_id: str
) -> Union[Mapping[str, Any], Response]:
    """Parse the request body as a JSON object with a model field.

    Returns the payload, or the error response to send instead.
    """
    try:
        body = await request.body()
        payload = json.loads(body or b"{}")
    except ClientDisconnect:
        logger.warning(f"[{req_id}] ClientDisconnect while reading request body")
        return Response(status_code=499)  # Client Closed Request
    except json.JSONDecodeError:
        logger.warning(f"[{req_id}] Invalid JSON payload")
        return _anthropic_error_response(
            "Invalid JSON payload",
            error_code="invalid_json",
        )

    if not isinstance(payload, Mapping):
        return _anthropic_error_response(
            "Request body must be a JSON object",
            error_code="invalid_json_shape",
        )

    model = payload.get("model")
    if not isinstance(model, str) or not model:
        return _anthropic_error_response(
            "You must provide a model parameter",
            error_code="missing_parameter",
            param="model",
        )
    return payload


async def messages_endpoint(request: Request) -> Response:
    """POST /v1/messages - Anthropic Messages API compatible endpoint."""
    # Generate request ID for log correlation
    req_id = uuid.uuid4().hex[:8]
    start_time = time.perf_counter()

    client_host = request.client.host if request.client else "unknown"
    logger.info(f"[{req_id}] Messages API request from {client_host}")

    payload = await read_json_object(request, req_id)
    if isinstance(payload, Response):
        return payload

    messages = payload.get("messages")
    if not isinstance(messages, list) or not messages:
        logger.warning(f"[{req_id}] Rejected request without messages")
        return _anthropic_error_response(
            "messages must be a non-empty array",
            error_code="invalid_messages",
            param="messages",
        )

    state = get_state()
    anthropic_beta = request.headers.get("anthropic-beta")
    is_stream = bool(payload.get("stream"))

    # Translate Anthropic Messages request to Copilot chat completions
    try:
        chat_payload = messages_to_chat_completions(
            payload,
            anthropic_beta=anthropic_beta,
            registry=state.registry,
            variants=state.variants,
        )
    except InvalidRequestError as exc:
        logger.warning(f"[{req_id}] Rejected messages request: {exc.message}")
        return _anthropic_error_response(exc.message, error_code=exc.code)
    except Exception as exc:
        logger.error(f"[{req_id}] Failed to translate messages request: {exc}")
        return _anthropic_error_response(
            f"Failed to translate request: {exc}",
            error_code="translation_error",
        )

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            f"[{req_id}] Translated to chat completions: model={chat_payload.get('model')}, "
            f"messages_count={len(chat_payload.get('messages', []))}, stream={is_stream}"
        )

    try:
        result = await state.client.create_chat_completions(chat_payload)
    except UpstreamError as exc:
        logger.error(f"[{req_id}] Copilot returned status {exc.status_code}")
        return upstream_error_response(exc)
    except httpx.HTTPError as exc:
        elapsed = time.perf_counter() - start_time
        logger.error(f"[{req_id}] Backend error after {elapsed:.3f}s: {format_httpx_error(exc)}")
        return _anthropic_error_response(
            format_httpx_error(exc),
            error_type="api_error",
            status_code=502,
            error_code="backend_error",
        )

    if isinstance(result, UpstreamStream):
        elapsed = time.perf_counter() - start_time
        logger.info(
            f"[{req_id}] Starting translated streaming response for "
            f"{chat_payload['model']}, setup took {elapsed:.3f}s"
        )
        adapter = ChatToMessagesStreamAdapter(generate_message_id(), chat_payload["model"])

        async def adapted_stream() -> AsyncIterator[bytes]:
            try:
                async for event in adapter.adapt_stream(result):
                    yield event
            finally:
                await result.aclose()
                logger.info(
                    f"[{req_id}] Stream finished, stop_reason={adapter.finish_reason}"
                )

        return StreamingResponse(
            adapted_stream(),
            media_type="text/event-stream",
            headers={"cache-control": "no-cache"},
        )

    try:
        anthropic_response = chat_completion_to_messages(result)
    except Exception as exc:
        logger.error(f"[{req_id}] Failed to translate response: {exc}")
        return _anthropic_error_response(
            f"Failed to translate response: {exc}",
            error_type="api_error",
            status_code=500,
            error_code="translation_error",
        )

    elapsed = time.perf_counter() - start_time
    logger.info(
        f"[{req_id}] Completed non-streaming response for {chat_payload['model']}, "
        f"stop_reason={anthropic_response['stop_reason']}, took {elapsed:.3f}s"
    )
    return JSONResponse(anthropic_response)


async def count_tokens_endpoint(request: Request) -> Response:
    """POST /v1/messages/count_tokens - advisory token estimate.

    Never fails because of counting; unknown models or errors give the
    configured placeholder.
    """
    req_id = uuid.uuid4().hex[:8]
    state = get_state()
    placeholder = state.settings.token_counting.placeholder

    payload = await read_json_object(request, req_id)
    if isinstance(payload, Response):
        if payload.status_code == 499:
            return payload
        logger.warning(f"[{req_id}] Unusable count_tokens body, returning placeholder")
        return JSONResponse({"input_tokens": placeholder})

    try:
        models = (await state.get_models()).get("data") or []
    except (UpstreamError, httpx.HTTPError) as exc:
        logger.error(f"[{req_id}] Could not load model list for token counting: {exc}")
        return JSONResponse({"input_tokens": placeholder})

    input_tokens = state.token_counter.estimate(
        payload,
        models,
        anthropic_beta=request.headers.get("anthropic-beta"),
    )
    return JSONResponse({"input_tokens": input_tokens})
