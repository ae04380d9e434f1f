"""eventfeed.api.server: asyncio HTTP server for the event feed.

This module provides the server core that:
- builds the aiohttp application (routes, CORS, correlation ids, JSON errors)
- owns the shared upstream HTTP client and the cached EventFeedService
- runs until SIGINT/SIGTERM and then releases its resources
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import signal
from collections.abc import Awaitable, Callable
from typing import Any

from aiohttp import web

from eventfeed.api.routes import register_event_routes
from eventfeed.core.config_manager import get_config_value
from eventfeed.core.http_client import build_timeout, close_all_clients, get_shared_client
from eventfeed.feed_exceptions import EventFeedError
from eventfeed.feed_service import EventFeedService
from eventfeed.middleware import correlation_id_middleware

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def error_envelope(code: int, message: str) -> web.Response:
    """JSON error body ``{"code": int, "message": str}`` with matching status."""
    return web.json_response({"code": code, "message": message}, status=code)


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Map exceptions to the JSON error envelope.

    EventFeedError details are logged, never returned to the client.
    """
    try:
        return await handler(request)
    except web.HTTPNotFound:
        return error_envelope(404, "404 - Not found")
    except web.HTTPException as e:
        if e.status < 400:
            raise
        return error_envelope(e.status, f"{e.status} - {e.reason}")
    except EventFeedError as e:
        logger.error("%s", json.dumps(e.to_dict(), indent=2))
        return error_envelope(500, e.message)
    except Exception:
        logger.exception("Unhandled error while serving %s %s", request.method, request.path)
        return error_envelope(500, "500 - Internal server error")


@web.middleware
async def cors_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Allow the feed to be read from any origin."""
    response = await handler(request)
    response.headers["Access-Control-Allow-Origin"] = "*"
    return response


def make_app(feed_service: Any) -> web.Application:
    """Create the aiohttp application wired to ``feed_service``."""
    app = web.Application(
        middlewares=[correlation_id_middleware, cors_middleware, error_middleware]
    )
    register_event_routes(app, feed_service)
    app["feed_service"] = feed_service
    return app


async def _serve(config: Any, external_stop_event: asyncio.Event | None = None) -> None:
    """Run the server until signalled to stop.

    Args:
        config: Server configuration dict/object
        external_stop_event: Optional event to signal shutdown. If provided,
            signal handlers are not registered (caller owns signal handling).
    """
    stop_event = external_stop_event or asyncio.Event()

    request_timeout = float(get_config_value(config, "request_timeout", 30))
    client = await get_shared_client("eventfeed", timeout=build_timeout(request_timeout))
    feed_service = EventFeedService(config, client)

    app = make_app(feed_service)
    runner = web.AppRunner(app)
    await runner.setup()

    host = get_config_value(config, "server_bind", "0.0.0.0")  # nosec B104
    port = int(get_config_value(config, "server_port", 3030))
    site = web.TCPSite(runner, host=host, port=port)
    try:
        await site.start()
    except OSError:
        logger.exception("Failed to start server on %s:%d", host, port)
        await runner.cleanup()
        await close_all_clients()
        raise

    logger.info("Server started on %s:%d", host, port)

    if external_stop_event is None:
        loop = asyncio.get_running_loop()

        def _on_signal() -> None:
            logger.info("Shutdown signal received")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, _on_signal)

    await stop_event.wait()
    logger.info("Stop event received, shutting down")

    await runner.cleanup()
    try:
        await close_all_clients()
    except Exception as e:
        logger.warning("Error cleaning up shared HTTP clients: %s", e)

    logger.info("Server shutdown complete")


def start_server(config: Any) -> None:
    """Start the asyncio event loop and HTTP server.

    Args:
        config: dict or attribute object with keys:
            - server_bind / server_port: listen address
            - calendar_url / spaces_url: upstream documents
            - cache_ttl_seconds: feed cache lifetime
            - request_timeout: upstream request timeout in seconds
            - display_timezone: IANA zone for display dates (server local if unset)

    Blocks until SIGINT/SIGTERM is received.
    """
    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
