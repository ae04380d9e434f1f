"""
Unit tests for eventfeed.feed_fetcher.FeedFetcher

Covers:
- successful text downloads and Accept headers
- non-2xx statuses, timeouts and transport errors
- URL validation
- shared client reuse and shutdown
"""

import json

import httpx
import pytest

from eventfeed.core.http_client import close_all_clients, get_shared_client
from eventfeed.feed_exceptions import FeedFetchError, FeedStatusError, FeedTimeoutError
from eventfeed.feed_fetcher import FeedFetcher

pytestmark = [pytest.mark.unit, pytest.mark.fast]


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestFetchText:
    async def test_fetch_calendar_when_ok_then_body_returned(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["accept"] = request.headers.get("Accept")
            return httpx.Response(200, text="BEGIN:VCALENDAR\r\nEND:VCALENDAR\r\n")

        async with make_client(handler) as client:
            body = await FeedFetcher(client).fetch_calendar("https://cal.test/basic.ics")

        assert body.startswith("BEGIN:VCALENDAR")
        assert seen["accept"].startswith("text/calendar")

    async def test_fetch_spaces_when_ok_then_json_accept(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["accept"] = request.headers.get("Accept")
            return httpx.Response(200, json={"items": []})

        async with make_client(handler) as client:
            body = await FeedFetcher(client).fetch_spaces("https://spaces.test/api")

        assert json.loads(body) == {"items": []}
        assert seen["accept"] == "application/json"

    @pytest.mark.parametrize("status", [301, 404, 500, 503])
    async def test_fetch_text_when_not_success_then_status_error(self, status: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, text="nope")

        async with make_client(handler) as client:
            with pytest.raises(FeedStatusError) as exc_info:
                await FeedFetcher(client).fetch_text("https://cal.test/basic.ics")

        assert exc_info.value.status_code == status

    async def test_fetch_text_when_timeout_then_timeout_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow upstream", request=request)

        async with make_client(handler) as client:
            with pytest.raises(FeedTimeoutError):
                await FeedFetcher(client, request_timeout=1).fetch_text("https://cal.test/a.ics")

    async def test_fetch_text_when_connection_fails_then_fetch_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(FeedFetchError) as exc_info:
                await FeedFetcher(client).fetch_text("https://cal.test/a.ics")

        assert not isinstance(exc_info.value, FeedTimeoutError)

    @pytest.mark.parametrize("url", ["ftp://cal.test/a.ics", "file:///etc/passwd", "http:///no-host"])
    async def test_fetch_text_when_url_invalid_then_rejected_without_request(self, url: str) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        async with make_client(handler) as client:
            with pytest.raises(FeedFetchError):
                await FeedFetcher(client).fetch_text(url)

        assert calls == []


class TestSharedClient:
    async def test_get_shared_client_when_same_name_then_same_instance(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="x")

        first = await get_shared_client("fetch-test", transport=httpx.MockTransport(handler))
        second = await get_shared_client("fetch-test")

        assert first is second
        assert await FeedFetcher(first).fetch_text("https://cal.test/a.ics") == "x"

    async def test_close_all_clients_when_called_then_next_call_opens_fresh_client(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200))
        first = await get_shared_client("fetch-test", transport=transport)

        await close_all_clients()

        assert first.is_closed
        second = await get_shared_client("fetch-test", transport=transport)
        assert second is not first
        assert not second.is_closed
