"""In-process transports for the Copilot client.

Tests mount an ASGI app (or an ``httpx.MockTransport``) under a host name;
``CopilotClient`` asks this module for a transport before each request and
falls back to the real network when nothing is mounted for the URL's host.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional
from urllib.parse import urlsplit

import httpx

logger = logging.getLogger("copilot-gateway")

_mounted: dict[str, httpx.AsyncBaseTransport] = {}


def _host_key(host: str) -> str:
    return host.strip().lower()


def register_upstream_transport(host: str, transport: httpx.AsyncBaseTransport) -> None:
    """Route requests for ``host`` (``name`` or ``name:port``) through ``transport``."""
    key = _host_key(host or "")
    if not key:
        raise ValueError("host is required")
    _mounted[key] = transport
    logger.debug("Mounted in-process upstream for %s", key)


def clear_upstream_transports() -> None:
    _mounted.clear()


@contextmanager
def mounted_upstream(host: str, transport: httpx.AsyncBaseTransport) -> Iterator[None]:
    """Mount ``transport`` for the duration of a ``with`` block."""
    previous = _mounted.get(_host_key(host))
    register_upstream_transport(host, transport)
    try:
        yield
    finally:
        if previous is None:
            _mounted.pop(_host_key(host), None)
        else:
            _mounted[_host_key(host)] = previous


def get_upstream_transport(url: str) -> Optional[httpx.AsyncBaseTransport]:
    """Transport mounted for the host of ``url``, or None for the network."""
    if not _mounted or not url:
        return None
    netloc = urlsplit(url).netloc
    return _mounted.get(_host_key(netloc)) if netloc else None
