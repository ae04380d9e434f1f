"""Calendar document to event feed: expand, filter, sort, format."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, tzinfo
from typing import Any, Optional

from icalendar import Calendar

from eventfeed.calendar.feed_formatter import format_occurrence
from eventfeed.calendar.feed_locations import (
    DEFAULT_MAP_SEARCH_URL_TEMPLATE,
    DEFAULT_SPACE_URL_TEMPLATE,
)
from eventfeed.calendar.feed_models import FeedEvent, Occurrence, SpaceEntry
from eventfeed.calendar.feed_recurrence import MAX_RECURRENCES, expand_component
from eventfeed.calendar.feed_window import WINDOW_DAYS, filter_window, sort_by_end

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineOptions:
    """Tunables for one pipeline run."""

    display_tz: tzinfo = UTC
    space_url_template: str = DEFAULT_SPACE_URL_TEMPLATE
    map_search_url_template: str = DEFAULT_MAP_SEARCH_URL_TEMPLATE
    window_days: int = WINDOW_DAYS
    max_occurrences: int = MAX_RECURRENCES


def parse_calendar(ics_content: str) -> Calendar:
    """Parse an ICS document.

    Raises:
        ValueError: If the content is not a single VCALENDAR
    """
    calendar = Calendar.from_ical(ics_content)
    if not isinstance(calendar, Calendar) or calendar.name != "VCALENDAR":
        raise ValueError("Document is not a VCALENDAR")
    return calendar


def expand_calendar(calendar: Any, max_occurrences: int = MAX_RECURRENCES) -> list[Occurrence]:
    """Occurrences of every VEVENT in the calendar, recurrences expanded."""
    occurrences: list[Occurrence] = []
    event_count = 0
    for component in calendar.walk("VEVENT"):
        event_count += 1
        occurrences.extend(expand_component(component, max_occurrences))
    logger.debug("Expanded %d events into %d occurrences", event_count, len(occurrences))
    return occurrences


def data_to_events(
    calendar: Any,
    spaces: Sequence[SpaceEntry],
    now: datetime,
    options: Optional[PipelineOptions] = None,
) -> list[FeedEvent]:
    """Turn a parsed calendar and a location registry into the event feed.

    Args:
        calendar: Parsed icalendar Calendar
        spaces: Location registry, first match wins
        now: Reference instant used for the whole run
        options: Display timezone, link templates and limits

    Returns:
        FeedEvents ordered by end time
    """
    opts = options or PipelineOptions()
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    occurrences = expand_calendar(calendar, opts.max_occurrences)
    upcoming = sort_by_end(filter_window(occurrences, now, opts.window_days))

    events = []
    for occurrence in upcoming:
        event = format_occurrence(
            occurrence,
            spaces,
            opts.display_tz,
            opts.space_url_template,
            opts.map_search_url_template,
        )
        if event is not None:
            events.append(event)

    logger.info(
        "Built event feed: %d events from %d occurrences (%d in window)",
        len(events),
        len(occurrences),
        len(upcoming),
    )
    return events
