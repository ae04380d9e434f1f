"""Async fetching of the calendar document and the location registry."""

import logging
from typing import Optional
from urllib.parse import urlparse

import httpx

from .core.http_client import build_timeout
from .feed_exceptions import FeedFetchError, FeedStatusError, FeedTimeoutError

logger = logging.getLogger(__name__)


class FeedFetcher:
    """Downloads upstream documents over a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        request_timeout: float = 30.0,
    ) -> None:
        """Initialize fetcher.

        Args:
            client: HTTP client used for every request
            request_timeout: Read timeout in seconds; expiry is a fetch failure
        """
        self.client = client
        self.timeout = build_timeout(request_timeout)

    @staticmethod
    def _validate_url(url: str) -> None:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise FeedFetchError(f"Invalid upstream URL: {url!r}")

    async def fetch_text(self, url: str, accept: Optional[str] = None) -> str:
        """GET ``url`` and return the body as text.

        Raises:
            FeedTimeoutError: If the request timed out
            FeedStatusError: If the server answered with a non-2xx status
            FeedFetchError: For invalid URLs and transport errors
        """
        self._validate_url(url)
        headers = {"Accept": accept} if accept else None
        try:
            response = await self.client.get(url, headers=headers, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise FeedTimeoutError(f"Request to {url} timed out") from e
        except httpx.HTTPError as e:
            raise FeedFetchError(f"Request to {url} failed: {e}") from e

        if not response.is_success:
            raise FeedStatusError(
                f"Request to {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        logger.debug("Fetched %d bytes from %s", len(response.content), url)
        return response.text

    async def fetch_calendar(self, url: str) -> str:
        """Download the ICS calendar document."""
        return await self.fetch_text(url, accept="text/calendar, text/plain, */*")

    async def fetch_spaces(self, url: str) -> str:
        """Download the location registry JSON document."""
        return await self.fetch_text(url, accept="application/json")
