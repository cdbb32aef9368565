"""Shared HTTP client utilities — reusable httpx client."""

import logging

import httpx

from bugreport.config import get_settings

logger = logging.getLogger(__name__)

# Module-level shared client (created lazily, lives for the process lifetime)
_client: httpx.AsyncClient | None = None


def get_shared_client() -> httpx.AsyncClient:
    """Return a shared httpx.AsyncClient, creating it on first call.

    Relative endpoints resolve against ``settings.base_url``.  No timeout is
    set here; the transport's defaults apply.
    """
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(base_url=get_settings().base_url)
        logger.debug("Created shared HTTP client for %s", _client.base_url)
    return _client


async def close_shared_client() -> None:
    """Close the shared client if one is open."""
    global _client
    if _client is not None and not _client.is_closed:
        await _client.aclose()
    _client = None
