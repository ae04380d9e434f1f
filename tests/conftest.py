"""Shared fixtures for eventfeed tests."""

from collections.abc import AsyncIterator, Callable, Generator
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

import pytest
from icalendar import Calendar

from eventfeed.core.http_client import close_all_clients

CALENDAR_URL = "https://calendar.example.test/basic.ics"
SPACES_URL = "https://spaces.example.test/api/spaces"


def build_ics(*vevents: str) -> str:
    """Wrap VEVENT bodies (without BEGIN/END lines) into a VCALENDAR document."""
    lines = [
        "BEGIN:VCALENDAR",
        "PRODID:-//eventfeed tests//EN",
        "VERSION:2.0",
    ]
    for index, body in enumerate(vevents):
        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:event-{index}@eventfeed.test")
        lines.append("DTSTAMP:20260201T160619Z")
        lines.extend(line.strip() for line in body.strip().splitlines() if line.strip())
        lines.append("END:VEVENT")
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"


def build_calendar(*vevents: str) -> Calendar:
    return Calendar.from_ical(build_ics(*vevents))


def first_event(*vevents: str) -> Any:
    """Parse VEVENT bodies and return the first VEVENT component."""
    return build_calendar(*vevents).walk("VEVENT")[0]


# Calendar document with a single all-day event, as exported by Thunderbird
SINGLE_EVENT_ICS = """BEGIN:VCALENDAR
PRODID:-//Mozilla.org/NONSGML Mozilla Calendar V1.1//EN
VERSION:2.0
NAME:Test Calendar
X-WR-CALNAME:Test Calendar
BEGIN:VEVENT
CREATED:20260201T160519Z
LAST-MODIFIED:20260201T160619Z
DTSTAMP:20260201T160619Z
UID:ee5a0fb2-6f9d-437b-a529-ab501f48876b
SUMMARY:Test Event
DTSTART;VALUE=DATE:20260203
DTEND;VALUE=DATE:20260204
TRANSP:TRANSPARENT
LOCATION:Test Location
DESCRIPTION;ALTREP="data:text/html,Test%20description":Test description
END:VEVENT
END:VCALENDAR
"""


@pytest.fixture
def now() -> datetime:
    """Fixed reference instant used across tests."""
    return datetime(2026, 2, 2, 16, 32, 11, tzinfo=UTC)


@pytest.fixture
def helsinki() -> ZoneInfo:
    """Deterministic display timezone, independent of the host."""
    return ZoneInfo("Europe/Helsinki")


@pytest.fixture
def single_event_ics() -> str:
    return SINGLE_EVENT_ICS


@pytest.fixture
def feed_config() -> dict[str, Any]:
    """Minimal service configuration pointing at fake upstream URLs."""
    return {
        "calendar_url": CALENDAR_URL,
        "spaces_url": SPACES_URL,
        "space_url_template": "https://navi.jyu.fi/space/{id}",
        "map_search_url_template": "https://www.google.com/maps/search/?api=1&query={query}",
        "cache_ttl_seconds": 600,
        "request_timeout": 5,
        "display_timezone": "Europe/Helsinki",
    }


@pytest.fixture
def fixed_clock(now: datetime) -> Callable[[], datetime]:
    return lambda: now


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, Any, None]:
    """Keep EVENTFEED_* variables from the host out of the tests."""
    import os

    for key in list(os.environ):
        if key.startswith("EVENTFEED_"):
            monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture(autouse=True)
async def cleanup_shared_http_clients() -> AsyncIterator[None]:
    """Close shared httpx clients after every test."""
    yield
    await close_all_clients()
