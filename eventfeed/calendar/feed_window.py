"""Time-window filtering and ordering of occurrences."""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta

from eventfeed.calendar.feed_models import EventDate, Occurrence, PlainDate, UtcInstant

logger = logging.getLogger(__name__)

WINDOW_DAYS = 365


def _not_before(end: EventDate, bound: datetime) -> bool:
    """``end >= bound``; plain dates compare by calendar day."""
    if isinstance(end, PlainDate):
        return end.value >= bound.date()
    return end.value >= bound


def _before(end: EventDate, bound: datetime) -> bool:
    """``end < bound``; plain dates compare by calendar day."""
    if isinstance(end, PlainDate):
        return end.value < bound.date()
    return end.value < bound


def _ends_before_start(occurrence: Occurrence) -> bool:
    """True when start and end share a representation and end precedes start."""
    start, end = occurrence.start, occurrence.end
    if isinstance(start, PlainDate) and isinstance(end, PlainDate):
        return end.value < start.value
    if isinstance(start, UtcInstant) and isinstance(end, UtcInstant):
        return end.value < start.value
    return False


def filter_window(
    occurrences: Iterable[Occurrence], now: datetime, window_days: int = WINDOW_DAYS
) -> list[Occurrence]:
    """Keep occurrences that have not ended and end within the window.

    Args:
        occurrences: Candidate occurrences
        now: Reference instant (timezone-aware, UTC)
        window_days: Horizon length in days

    Returns:
        Occurrences with ``now <= end < now + window_days``; occurrences
        without a normalized end, or ending before they start, are dropped.
    """
    horizon = now + timedelta(days=window_days)
    kept = []
    dropped = 0
    for occurrence in occurrences:
        end = occurrence.end
        if not isinstance(end, (PlainDate, UtcInstant)):
            dropped += 1
        elif _ends_before_start(occurrence):
            logger.debug("Dropping event %r: ends before it starts", occurrence.summary)
            dropped += 1
        elif _not_before(end, now) and _before(end, horizon):
            kept.append(occurrence)
        else:
            dropped += 1
    logger.debug("Window filter kept %d occurrences, dropped %d", len(kept), dropped)
    return kept


def sort_by_end(occurrences: Iterable[Occurrence]) -> list[Occurrence]:
    """Stable ascending sort by end; plain dates sort at UTC midnight."""

    def _key(occurrence: Occurrence) -> int:
        if occurrence.end is None:
            raise ValueError("Cannot sort an occurrence without an end")
        return occurrence.end.sort_timestamp()

    return sorted(occurrences, key=_key)
