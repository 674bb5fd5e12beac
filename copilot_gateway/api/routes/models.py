"""Models listing endpoint."""

import logging

import httpx
from fastapi import Response
from fastapi.responses import JSONResponse

from ...copilot import format_httpx_error
from ...core.exceptions import UpstreamError
from ...core.registry import get_state
from .messages import _anthropic_error_response, upstream_error_response

logger = logging.getLogger("copilot-gateway")


async def list_models() -> Response:
    """List the Copilot model catalogue.

    GET /v1/models
    """
    logger.info("Received models list request")

    try:
        models = await get_state().get_models()
    except UpstreamError as exc:
        return upstream_error_response(exc)
    except httpx.HTTPError as exc:
        return _anthropic_error_response(
            format_httpx_error(exc),
            error_type="api_error",
            status_code=502,
            error_code="backend_error",
        )

    return JSONResponse({
        "object": models.get("object", "list"),
        "data": models.get("data") or [],
    })
