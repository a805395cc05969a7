"""
Shared async HTTP client for the bundled Azure REST adapters.

One httpx.AsyncClient is reused by every adapter instance so a session
fetching several accounts from three providers does not open a connection
pool per call.
"""

import inspect
from typing import Optional

import httpx
import structlog

from pimroles.shared.core.config import get_settings

logger = structlog.get_logger()

_client: Optional[httpx.AsyncClient] = None


def _build_client(timeout: float) -> httpx.AsyncClient:
    settings = get_settings()
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout, connect=10.0),
        limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
        headers={"User-Agent": f"{settings.APP_NAME}/{settings.VERSION}"},
    )


def get_http_client(timeout: Optional[float] = None) -> httpx.AsyncClient:
    """
    Returns the shared httpx.AsyncClient, creating it on first use.
    """
    global _client
    if _client is None:
        logger.debug("http_client_lazy_initialized")
        _client = _build_client(timeout or get_settings().HTTP_TIMEOUT_SECONDS)
    return _client


async def init_http_client() -> None:
    global _client
    if _client is not None:
        logger.warning("http_client_already_initialized")
        return
    _client = _build_client(get_settings().HTTP_TIMEOUT_SECONDS)
    logger.info("http_client_initialized")


async def close_http_client() -> None:
    """
    Gracefully shuts down the shared client, flushing its connection pool.
    """
    global _client
    client, _client = _client, None
    if client is None:
        return
    close_result = client.aclose()
    if inspect.isawaitable(close_result):
        await close_result
    logger.info("http_client_closed")
