"""Process-wide httpx client for upstream fetches.

The server opens one client at startup, hands it to the feed service and
closes it on shutdown; connections to the calendar and registry hosts are
pooled in between.
"""

import asyncio
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

_shared_clients: dict[str, httpx.AsyncClient] = {}
_client_lock = asyncio.Lock()

DEFAULT_REQUEST_TIMEOUT = 30.0

UPSTREAM_LIMITS = httpx.Limits(max_connections=10, max_keepalive_connections=5)

UPSTREAM_HEADERS: dict[str, str] = {
    "User-Agent": "eventfeed/0.1 (+https://github.com/eventfeed/eventfeed)",
    "Accept": "text/calendar, application/json, text/plain, */*",
}


def build_timeout(request_timeout: float = DEFAULT_REQUEST_TIMEOUT) -> httpx.Timeout:
    """Timeout bounding every phase of an upstream request."""
    return httpx.Timeout(connect=10.0, read=request_timeout, write=10.0, pool=request_timeout)


async def get_shared_client(
    name: str = "eventfeed",
    timeout: Optional[httpx.Timeout] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Return the open client registered under ``name``, creating it if needed.

    Args:
        name: Registry key of the client
        timeout: Default timeout for requests made through the client
        transport: Custom transport (tests pass ``httpx.MockTransport``)
    """
    async with _client_lock:
        client = _shared_clients.get(name)
        if client is None or client.is_closed:
            client = httpx.AsyncClient(
                transport=transport,
                limits=UPSTREAM_LIMITS,
                timeout=timeout or build_timeout(),
                follow_redirects=True,
                headers=UPSTREAM_HEADERS,
            )
            _shared_clients[name] = client
            logger.info("Opened shared HTTP client '%s'", name)
        return client


async def close_all_clients() -> None:
    """Close and forget every shared client; called on shutdown."""
    async with _client_lock:
        clients = list(_shared_clients.items())
        _shared_clients.clear()

    for name, client in clients:
        if client.is_closed:
            continue
        try:
            await client.aclose()
        except (httpx.HTTPError, RuntimeError) as e:
            logger.warning("Error closing shared HTTP client '%s': %s", name, e)
        else:
            logger.debug("Closed shared HTTP client '%s'", name)
