"""Rendering of occurrences into display-ready FeedEvent records."""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta, tzinfo
from typing import Optional

from eventfeed.calendar.feed_locations import (
    DEFAULT_MAP_SEARCH_URL_TEMPLATE,
    DEFAULT_SPACE_URL_TEMPLATE,
    url_for_location,
)
from eventfeed.calendar.feed_models import (
    EventDate,
    EventLocation,
    FeedEvent,
    Occurrence,
    PlainDate,
    SpaceEntry,
    UtcInstant,
)

logger = logging.getLogger(__name__)

DATE_FORMAT = "%d/%m/%Y"
TIME_FORMAT = "%H:%M"


def serialize_datetime_utc(dt: datetime) -> str:
    """Serialize a datetime as RFC 3339 UTC with a Z suffix.

    Examples:
        >>> serialize_datetime_utc(datetime(2026, 2, 3, 10, 0, tzinfo=UTC))
        '2026-02-03T10:00:00Z'
    """
    dt_utc = dt.astimezone(UTC) if dt.tzinfo is not None else dt.replace(tzinfo=UTC)
    return dt_utc.isoformat().replace("+00:00", "Z")


def to_iso8601(value: EventDate) -> str:
    if isinstance(value, PlainDate):
        return value.value.strftime("%Y-%m-%d")
    return serialize_datetime_utc(value.value)


def format_date_range(start: PlainDate, end: PlainDate) -> str:
    """``DD/MM/YYYY`` for a one-day event, otherwise a two-date range.

    The end date is exclusive, as in iCalendar.
    """
    if (end.value - start.value).days == 1:
        return start.value.strftime(DATE_FORMAT)
    return f"{start.value.strftime(DATE_FORMAT)} - {end.value.strftime(DATE_FORMAT)}"


def format_time_range(start: UtcInstant, end: UtcInstant, display_tz: tzinfo) -> str:
    """Time range in the display timezone.

    Spans under a day render as ``DD/MM/YYYY HH:MM - HH:MM``, longer ones as
    ``DD/MM/YYYY HH:MM - DD/MM HH:MM``. The span is measured in elapsed
    time, so a DST shift inside the range does not change the form.
    """
    local_start = start.value.astimezone(display_tz)
    local_end = end.value.astimezone(display_tz)
    if end.value - start.value < timedelta(days=1):
        return (
            f"{local_start.strftime(DATE_FORMAT)} "
            f"{local_start.strftime(TIME_FORMAT)} - {local_end.strftime(TIME_FORMAT)}"
        )
    return f"{local_start.strftime('%d/%m/%Y %H:%M')} - {local_end.strftime('%d/%m %H:%M')}"


def format_display_date(start: EventDate, end: EventDate, display_tz: tzinfo) -> Optional[str]:
    """Display string for a start/end pair, or None for mixed representations."""
    if isinstance(start, PlainDate) and isinstance(end, PlainDate):
        return format_date_range(start, end)
    if isinstance(start, UtcInstant) and isinstance(end, UtcInstant):
        return format_time_range(start, end, display_tz)
    return None


def format_occurrence(
    occurrence: Occurrence,
    spaces: Sequence[SpaceEntry],
    display_tz: tzinfo,
    space_url_template: str = DEFAULT_SPACE_URL_TEMPLATE,
    map_search_url_template: str = DEFAULT_MAP_SEARCH_URL_TEMPLATE,
) -> Optional[FeedEvent]:
    """Build the output record for one occurrence.

    Args:
        occurrence: Occurrence to render
        spaces: Location registry used for links
        display_tz: Timezone for the human-readable date string
        space_url_template: Registry link template with an ``{id}`` field
        map_search_url_template: Fallback link template with a ``{query}`` field

    Returns:
        FeedEvent, or None when summary/start/end are missing or the start
        and end use different representations
    """
    summary, start, end = occurrence.summary, occurrence.start, occurrence.end
    if summary is None or start is None or end is None:
        logger.debug("Skipping event with missing required fields: %r", summary)
        return None

    display_date = format_display_date(start, end, display_tz)
    if display_date is None:
        logger.debug("Skipping event %r: start and end in differing formats", summary)
        return None

    location = None
    if occurrence.location is not None:
        location = EventLocation(
            text=occurrence.location,
            url=url_for_location(
                occurrence.location, spaces, space_url_template, map_search_url_template
            ),
        )

    return FeedEvent(
        summary=summary,
        display_date=display_date,
        start_iso8601=to_iso8601(start),
        end_iso8601=to_iso8601(end),
        location=location,
        description=occurrence.description,
    )
