"""
Shared HTTP client for remote catalogs and registry APIs.

One httpx.Client is created per application and shared by every adapter:
it pools keep-alive connections, negotiates gzip, and is safe to use from
multiple worker threads.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from . import __version__
from .errors import ParseError, RemoteFetchError

logger = logging.getLogger(__name__)

USER_AGENT = f"depmgr/{__version__}"

DEFAULT_TIMEOUT_SECONDS = 30.0


def create_http_client(timeout: float = DEFAULT_TIMEOUT_SECONDS) -> httpx.Client:
    """
    Create a pooled HTTP client.

    Args:
        timeout: Per-request timeout in seconds

    Returns:
        httpx.Client with connection reuse and gzip enabled
    """
    return httpx.Client(
        headers={
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
            "Accept-Encoding": "gzip",
        },
        timeout=timeout,
        limits=httpx.Limits(max_keepalive_connections=10, keepalive_expiry=90.0),
        follow_redirects=True,
    )


def get_json(client: httpx.Client, url: str) -> Any:
    """
    Fetch a URL and decode its JSON body.

    Args:
        client: Shared HTTP client
        url: URL to fetch

    Returns:
        Decoded JSON value

    Raises:
        RemoteFetchError: On transport errors or a non-2xx status
        ParseError: If the body is not valid JSON
    """
    try:
        response = client.get(url)
    except httpx.HTTPError as e:
        raise RemoteFetchError(url, str(e)) from e

    if not response.is_success:
        raise RemoteFetchError(url, f"HTTP {response.status_code}", response.status_code)

    try:
        return response.json()
    except ValueError as e:
        raise ParseError(f"Invalid JSON from {url}: {e}") from e
