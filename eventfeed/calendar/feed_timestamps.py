"""Timestamp normalization for iCalendar date/date-time properties.

Calendar timestamps arrive in three shapes: a bare date (``VALUE=DATE``), a
UTC date-time (``...Z``) or a wall-clock date-time with a ``TZID`` parameter.
They are reduced to one of two canonical forms, ``PlainDate`` or
``UtcInstant``. Anything else (floating date-times, unknown zones) yields
``None`` and the caller drops whatever needed the value.
"""

import logging
from datetime import UTC, date, datetime, time, timedelta
from typing import Any, Optional

from eventfeed.calendar.feed_models import EventDate, PlainDate, UtcInstant
from eventfeed.core.timezone_utils import resolve_timezone

logger = logging.getLogger(__name__)


def _unwrap(prop: Any) -> tuple[Any, dict]:
    """Return ``(value, params)`` for an icalendar property or a bare value."""
    if isinstance(prop, list):
        # Repeated DTSTART/DTEND is invalid iCalendar; the first one wins.
        prop = prop[0] if prop else None
    if prop is None:
        return None, {}
    value = getattr(prop, "dt", prop)
    params = getattr(prop, "params", None) or {}
    return value, params


def _localize(value: datetime, params: dict) -> Optional[datetime]:
    """Interpret a date-time per its TZID/UTC flag as an aware datetime.

    Returns None for floating values and unresolvable zones.
    """
    tzid = params.get("TZID")
    if tzid:
        tz = resolve_timezone(str(tzid))
        if tz is None:
            logger.debug("Skipping timestamp with unknown TZID %r", tzid)
            return None
        # Keep the wall clock and attach the named zone
        return value.replace(tzinfo=None).replace(tzinfo=tz)
    if value.tzinfo is not None and value.utcoffset() == timedelta(0):
        return value.astimezone(UTC)
    return None


def to_event_date(prop: Any) -> Optional[EventDate]:
    """Normalize a DTSTART/DTEND-like property.

    Args:
        prop: icalendar ``vDDDTypes`` (or a plain date/datetime) or None

    Returns:
        PlainDate, UtcInstant (whole seconds), or None when not representable
    """
    value, params = _unwrap(prop)
    if value is None:
        return None

    if isinstance(value, datetime):
        localized = _localize(value, params)
        if localized is None:
            if not params.get("TZID"):
                logger.warning("Unhandled timestamp type: %r", value)
            return None
        return UtcInstant(localized)

    if isinstance(value, date):
        return PlainDate(value)

    logger.warning("Unhandled timestamp type: %r", value)
    return None


def to_rrule_anchor(prop: Any) -> Optional[datetime]:
    """DTSTART as a recurrence anchor.

    Bare dates become naive midnight datetimes, TZID date-times stay in their
    own zone so the wall clock is kept across DST changes, UTC stays UTC.
    """
    value, params = _unwrap(prop)
    if isinstance(value, datetime):
        return _localize(value, params)
    if isinstance(value, date):
        return datetime.combine(value, time())
    return None
