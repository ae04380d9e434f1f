"""Cached event feed: fetch upstream documents, run the pipeline, memoize."""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, Optional

import httpx

from .calendar.feed_locations import parse_spaces
from .calendar.feed_models import FeedEvent, SpaceEntry
from .calendar.feed_pipeline import PipelineOptions, data_to_events, parse_calendar
from .core.config_manager import DEFAULT_CONFIG, get_config_value
from .core.refresh_cache import RefreshCache
from .core.timezone_utils import get_display_timezone, now_utc
from .feed_exceptions import EventFeedError, FeedFetchError, SpaceRegistryError
from .feed_fetcher import FeedFetcher

logger = logging.getLogger(__name__)

CALENDAR_ERROR_MESSAGE = "The remote calendar could not be processed."


class EventFeedService:
    """Serves the upcoming-event list for one calendar and one location registry."""

    def __init__(
        self,
        config: Any,
        client: httpx.AsyncClient,
        time_provider: Callable[[], datetime] = now_utc,
        cache: Optional[RefreshCache[list[FeedEvent]]] = None,
    ) -> None:
        """Initialize the service.

        Args:
            config: Config dict (see ``core.config_manager``) or attribute object
            client: HTTP client for upstream requests
            time_provider: Returns the reference "now" for a refresh
            cache: Cache to use; one is created from ``cache_ttl_seconds`` if omitted
        """
        self.config = config
        self.time_provider = time_provider
        self.calendar_url = self._cfg("calendar_url")
        self.spaces_url = self._cfg("spaces_url")
        self.fetcher = FeedFetcher(client, request_timeout=float(self._cfg("request_timeout")))
        self.options = PipelineOptions(
            display_tz=get_display_timezone(self._cfg("display_timezone")),
            space_url_template=self._cfg("space_url_template"),
            map_search_url_template=self._cfg("map_search_url_template"),
        )
        self.cache: RefreshCache[list[FeedEvent]] = cache or RefreshCache(
            ttl_seconds=float(self._cfg("cache_ttl_seconds")), name="events"
        )

    def _cfg(self, key: str) -> Any:
        return get_config_value(self.config, key, DEFAULT_CONFIG[key])

    async def get_events(self) -> list[FeedEvent]:
        """Cached feed; refreshed at most once per TTL, single-flighted.

        Raises:
            EventFeedError: If the calendar could not be fetched or parsed
        """
        return await self.cache.get(self.build_events)

    async def load_spaces(self) -> list[SpaceEntry]:
        """Fetch the location registry; any failure yields an empty registry."""
        if not self.spaces_url:
            return []
        try:
            document = await self.fetcher.fetch_spaces(self.spaces_url)
            return parse_spaces(document)
        except (FeedFetchError, SpaceRegistryError) as e:
            logger.warning("Location registry unavailable, using map links only: %s", e)
            return []

    async def load_calendar(self) -> Any:
        """Fetch and parse the calendar document.

        Raises:
            EventFeedError: On fetch or parse failure
        """
        try:
            content = await self.fetcher.fetch_calendar(self.calendar_url)
            return parse_calendar(content)
        except (FeedFetchError, ValueError) as e:
            raise EventFeedError(CALENDAR_ERROR_MESSAGE, details=repr(e)) from e

    async def build_events(self) -> list[FeedEvent]:
        """Run one uncached refresh: fetch both documents and build the feed."""
        spaces, calendar = await asyncio.gather(self.load_spaces(), self.load_calendar())
        now = self.time_provider()
        # CPU-bound expansion runs off the event loop
        return await asyncio.to_thread(data_to_events, calendar, spaces, now, self.options)
