"""Event feed routes."""

from __future__ import annotations

import logging
from typing import Any

from aiohttp import web

logger = logging.getLogger(__name__)


def register_event_routes(app: web.Application, feed_service: Any) -> None:
    """Register the event feed routes.

    Args:
        app: aiohttp web application
        feed_service: Object with an awaitable ``get_events()`` returning FeedEvents
    """

    async def events(_request: web.Request) -> web.Response:
        """Upcoming events as a JSON array."""
        feed = await feed_service.get_events()
        logger.debug("/events serving %d events", len(feed))
        return web.json_response([event.to_json_dict() for event in feed], status=200)

    async def index(_request: web.Request) -> web.Response:
        return web.Response(text="Hello world!")

    app.router.add_get("/events", events)
    app.router.add_get("/", index)
