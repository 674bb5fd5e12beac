"""Responses API passthrough endpoint.

Payloads go to the Copilot ``/responses`` endpoint untouched; streaming
events are relayed to the client in arrival order.
"""

import logging
import time
import uuid
from typing import AsyncIterator

import httpx
from fastapi import Request, Response
from fastapi.responses import JSONResponse, StreamingResponse

from ...copilot import UpstreamStream, format_httpx_error
from ...core.exceptions import UpstreamError
from ...core.registry import get_state
from ...core.sse import iter_sse_events
from .messages import _anthropic_error_response, read_json_object, upstream_error_response

logger = logging.getLogger("copilot-gateway")


async def responses_endpoint(request: Request) -> Response:
    """POST /v1/responses - forward a Responses API request to Copilot."""
    req_id = uuid.uuid4().hex[:8]
    start_time = time.perf_counter()
    logger.info(f"[{req_id}] Responses API request")

    payload = await read_json_object(request, req_id)
    if isinstance(payload, Response):
        return payload

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            f"[{req_id}] Responses payload: model={payload.get('model')}, "
            f"stream={bool(payload.get('stream'))}"
        )

    state = get_state()
    try:
        result = await state.client.create_responses(payload)
    except UpstreamError as exc:
        logger.error(f"[{req_id}] Copilot returned status {exc.status_code}")
        return upstream_error_response(exc)
    except httpx.HTTPError as exc:
        logger.error(f"[{req_id}] Backend error: {format_httpx_error(exc)}")
        return _anthropic_error_response(
            format_httpx_error(exc),
            error_type="api_error",
            status_code=502,
            error_code="backend_error",
        )

    if not isinstance(result, UpstreamStream):
        elapsed = time.perf_counter() - start_time
        logger.info(f"[{req_id}] Completed non-streaming responses call, took {elapsed:.3f}s")
        return JSONResponse(result)

    async def relay() -> AsyncIterator[bytes]:
        count = 0
        try:
            async for event in iter_sse_events(result):
                count += 1
                yield event.encode()
        finally:
            await result.aclose()
            logger.info(f"[{req_id}] Relayed {count} responses stream events")

    return StreamingResponse(
        relay(),
        media_type="text/event-stream",
        headers={"cache-control": "no-cache"},
    )
