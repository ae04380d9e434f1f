"""Integration tests for the eventfeed HTTP surface.

The aiohttp application is served by ``aiohttp.test_utils.TestServer``;
upstream documents come from ``httpx.MockTransport``.
"""

import json
from collections.abc import AsyncIterator, Callable
from datetime import datetime
from typing import Any

import httpx
import pytest
from aiohttp.test_utils import TestClient, TestServer

from eventfeed.api.server import make_app
from eventfeed.calendar.feed_models import EventLocation, FeedEvent
from eventfeed.feed_exceptions import EventFeedError
from eventfeed.feed_service import CALENDAR_ERROR_MESSAGE, EventFeedService
from tests.conftest import CALENDAR_URL, SINGLE_EVENT_ICS, SPACES_URL

pytestmark = pytest.mark.integration


class StubFeedService:
    """Returns canned events or raises a canned error."""

    def __init__(self, events: list[FeedEvent] | None = None, error: Exception | None = None):
        self.events = events or []
        self.error = error
        self.calls = 0

    async def get_events(self) -> list[FeedEvent]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.events


async def serve(feed_service: Any) -> TestClient:
    client = TestClient(TestServer(make_app(feed_service)))
    await client.start_server()
    return client


@pytest.fixture
async def make_client() -> AsyncIterator[Callable[[Any], Any]]:
    clients: list[TestClient] = []

    async def _make(feed_service: Any) -> TestClient:
        client = await serve(feed_service)
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.close()


class TestEventsEndpoint:
    async def test_events_when_service_returns_events_then_json_array(self, make_client) -> None:
        event = FeedEvent(
            summary="Lecture",
            display_date="03/02/2026 12:00 - 14:00",
            start_iso8601="2026-02-03T10:00:00Z",
            end_iso8601="2026-02-03T12:00:00Z",
            location=EventLocation(text="Ag C231", url="https://navi.jyu.fi/space/1"),
        )
        client = await make_client(StubFeedService(events=[event]))

        resp = await client.get("/events")

        assert resp.status == 200
        assert resp.headers["Content-Type"].startswith("application/json")
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
        assert await resp.json() == [
            {
                "summary": "Lecture",
                "date": "03/02/2026 12:00 - 14:00",
                "start_iso8601": "2026-02-03T10:00:00Z",
                "end_iso8601": "2026-02-03T12:00:00Z",
                "location": {"string": "Ag C231", "url": "https://navi.jyu.fi/space/1"},
            }
        ]

    async def test_events_when_no_events_then_empty_array(self, make_client) -> None:
        client = await make_client(StubFeedService())
        resp = await client.get("/events")
        assert resp.status == 200
        assert await resp.json() == []

    async def test_events_when_feed_error_then_500_envelope_without_details(
        self, make_client
    ) -> None:
        error = EventFeedError(CALENDAR_ERROR_MESSAGE, details="FeedStatusError('secret upstream')")
        client = await make_client(StubFeedService(error=error))

        resp = await client.get("/events")
        body = await resp.text()

        assert resp.status == 500
        assert json.loads(body) == {"code": 500, "message": CALENDAR_ERROR_MESSAGE}
        assert "secret upstream" not in body
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    async def test_events_when_unexpected_error_then_generic_500(self, make_client) -> None:
        client = await make_client(StubFeedService(error=RuntimeError("boom")))
        resp = await client.get("/events")
        assert resp.status == 500
        assert await resp.json() == {"code": 500, "message": "500 - Internal server error"}


class TestOtherRoutes:
    async def test_root_when_requested_then_greeting(self, make_client) -> None:
        client = await make_client(StubFeedService())
        resp = await client.get("/")
        assert resp.status == 200
        assert await resp.text() == "Hello world!"
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    async def test_unknown_path_when_requested_then_404_envelope(self, make_client) -> None:
        client = await make_client(StubFeedService())
        resp = await client.get("/does-not-exist")
        assert resp.status == 404
        assert await resp.json() == {"code": 404, "message": "404 - Not found"}
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    async def test_wrong_method_when_requested_then_405_envelope(self, make_client) -> None:
        client = await make_client(StubFeedService())
        resp = await client.post("/events")
        assert resp.status == 405
        body = await resp.json()
        assert body["code"] == 405


class TestCorrelationIds:
    async def test_request_id_when_supplied_then_echoed(self, make_client) -> None:
        client = await make_client(StubFeedService())
        resp = await client.get("/events", headers={"X-Request-ID": "abc-123"})
        assert resp.headers["X-Request-ID"] == "abc-123"

    async def test_request_id_when_correlation_header_then_echoed(self, make_client) -> None:
        client = await make_client(StubFeedService())
        resp = await client.get("/", headers={"X-Correlation-ID": "corr-9"})
        assert resp.headers["X-Request-ID"] == "corr-9"

    async def test_request_id_when_absent_then_generated(self, make_client) -> None:
        client = await make_client(StubFeedService())
        first = await client.get("/")
        second = await client.get("/")
        assert first.headers["X-Request-ID"]
        assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]

    async def test_request_id_when_error_response_then_still_set(self, make_client) -> None:
        client = await make_client(StubFeedService(error=RuntimeError("boom")))
        resp = await client.get("/events", headers={"X-Request-ID": "err-1"})
        assert resp.status == 500
        assert resp.headers["X-Request-ID"] == "err-1"


class TestEndToEnd:
    """Real service and pipeline behind the HTTP surface."""

    async def test_events_when_upstream_ok_then_feed_served_and_cached(
        self,
        make_client,
        feed_config: dict[str, Any],
        fixed_clock: Callable[[], datetime],
    ) -> None:
        requests: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(str(request.url))
            if str(request.url) == CALENDAR_URL:
                return httpx.Response(200, text=SINGLE_EVENT_ICS)
            if str(request.url) == SPACES_URL:
                return httpx.Response(503)
            return httpx.Response(404)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            service = EventFeedService(feed_config, http_client, time_provider=fixed_clock)
            client = await make_client(service)

            first = await client.get("/events")
            second = await client.get("/events")

            assert first.status == 200
            assert await first.json() == [
                {
                    "summary": "Test Event",
                    "date": "03/02/2026",
                    "start_iso8601": "2026-02-03",
                    "end_iso8601": "2026-02-04",
                    "location": {
                        "string": "Test Location",
                        "url": "https://www.google.com/maps/search/?api=1&query=Test%20Location",
                    },
                    "description": "Test description",
                }
            ]
            assert await second.json() == await first.json()
            assert requests.count(CALENDAR_URL) == 1

    async def test_events_when_calendar_unavailable_then_500_envelope(
        self,
        make_client,
        feed_config: dict[str, Any],
        fixed_clock: Callable[[], datetime],
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            service = EventFeedService(feed_config, http_client, time_provider=fixed_clock)
            client = await make_client(service)

            resp = await client.get("/events")

            assert resp.status == 500
            assert await resp.json() == {"code": 500, "message": CALENDAR_ERROR_MESSAGE}
