"""RRULE/RDATE expansion of VEVENT components into concrete occurrences."""

import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, timedelta
from itertools import islice
from typing import Any, Optional

from dateutil.rrule import rrule, rruleset, rrulestr

from eventfeed.calendar.feed_models import Occurrence, PlainDate, UtcInstant
from eventfeed.calendar.feed_timestamps import to_event_date, to_rrule_anchor

logger = logging.getLogger(__name__)

# Hard ceiling per event, regardless of COUNT/UNTIL or unbounded rules
MAX_RECURRENCES = 100


class RecurrenceParseError(ValueError):
    """Recurrence properties could not be turned into a ruleset."""


def _props(component: Any, name: str) -> list[Any]:
    """All instances of a property; icalendar returns a list when repeated."""
    value = component.get(name)
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _text(component: Any, name: str) -> Optional[str]:
    values = _props(component, name)
    if not values:
        return None
    return str(values[0])


def _rule_text(prop: Any) -> str:
    if hasattr(prop, "to_ical"):
        raw = prop.to_ical()
        return raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)
    return str(prop)


def _date_values(prop: Any) -> list[Any]:
    """Flatten an RDATE/EXDATE property (``vDDDLists``) into date/datetime values."""
    dts = getattr(prop, "dts", None)
    if dts is None:
        return [getattr(prop, "dt", prop)]
    values = []
    for item in dts:
        value = getattr(item, "dt", item)
        # RDATE;VALUE=PERIOD carries (start, end-or-duration)
        if isinstance(value, tuple):
            value = value[0]
        values.append(value)
    return values


@dataclass
class RecurrenceSpec:
    """Structured recurrence description of one VEVENT."""

    anchor: Optional[datetime]
    rrules: list[str] = field(default_factory=list)
    exrules: list[str] = field(default_factory=list)
    rdates: list[Any] = field(default_factory=list)
    exdates: list[Any] = field(default_factory=list)

    @classmethod
    def from_component(cls, component: Any) -> "RecurrenceSpec":
        rdates: list[Any] = []
        for prop in _props(component, "RDATE"):
            rdates.extend(_date_values(prop))
        exdates: list[Any] = []
        for prop in _props(component, "EXDATE"):
            exdates.extend(_date_values(prop))
        return cls(
            anchor=to_rrule_anchor(component.get("DTSTART")),
            rrules=[_rule_text(p) for p in _props(component, "RRULE")],
            exrules=[_rule_text(p) for p in _props(component, "EXRULE")],
            rdates=rdates,
            exdates=exdates,
        )

    @property
    def is_recurring(self) -> bool:
        """True when the event generates dates beyond its own DTSTART/DTEND."""
        return bool(self.rrules or self.rdates)

    @staticmethod
    def _align(value: Any, anchor: datetime) -> datetime:
        """Bring an RDATE/EXDATE value into the anchor's representation."""
        if not isinstance(value, datetime):
            if not isinstance(value, date):
                raise RecurrenceParseError(f"Unsupported recurrence date {value!r}")
            if anchor.tzinfo is None:
                return datetime.combine(value, anchor.time())
            return datetime.combine(value, anchor.timetz())
        if anchor.tzinfo is None:
            return value.replace(tzinfo=None)
        if value.tzinfo is None:
            return value.replace(tzinfo=anchor.tzinfo)
        return value

    @staticmethod
    def _parse_rule(text: str, anchor: datetime) -> rrule:
        try:
            # Date-only anchors are naive; drop a UTC flag on UNTIL to match them
            parsed = rrulestr(text, dtstart=anchor, ignoretz=anchor.tzinfo is None)
        except (ValueError, TypeError) as e:
            raise RecurrenceParseError(f"Invalid recurrence rule {text!r}: {e}") from e
        if not isinstance(parsed, rrule):
            raise RecurrenceParseError(f"Unexpected ruleset in rule {text!r}")
        return parsed

    def build_ruleset(self) -> rruleset:
        """Assemble a dateutil ruleset.

        Raises:
            RecurrenceParseError: If there is no anchor or any part is malformed
        """
        anchor = self.anchor
        if anchor is None:
            raise RecurrenceParseError("Recurring event has no usable DTSTART")
        rule_set = rruleset()
        for text in self.rrules:
            rule_set.rrule(self._parse_rule(text, anchor))
        for text in self.exrules:
            rule_set.exrule(self._parse_rule(text, anchor))
        for value in self.rdates:
            rule_set.rdate(self._align(value, anchor))
        for value in self.exdates:
            rule_set.exdate(self._align(value, anchor))
        return rule_set


def occurrence_from_component(component: Any) -> Occurrence:
    """Copy the descriptive fields and normalized times of a VEVENT."""
    return Occurrence(
        summary=_text(component, "SUMMARY"),
        description=_text(component, "DESCRIPTION"),
        location=_text(component, "LOCATION"),
        start=to_event_date(component.get("DTSTART")),
        end=to_event_date(component.get("DTEND")),
    )


def materialize_occurrences(base: Occurrence, starts: list[datetime]) -> list[Occurrence]:
    """Clone ``base`` for each recurrence start, preserving its duration.

    Plain-date events keep a whole-day duration, instant events a duration
    in seconds. Returns an empty list when the original start and end are
    missing or use different representations.
    """
    start, end = base.start, base.end

    if isinstance(start, PlainDate) and isinstance(end, PlainDate):
        days = timedelta(days=(end.value - start.value).days)
        return [
            replace(base, start=PlainDate(s.date()), end=PlainDate(s.date() + days))
            for s in starts
        ]

    if isinstance(start, UtcInstant) and isinstance(end, UtcInstant):
        duration = end.value - start.value
        occurrences = []
        for s in starts:
            s_utc = s.astimezone(UTC) if s.tzinfo is not None else s.replace(tzinfo=UTC)
            occurrences.append(
                replace(base, start=UtcInstant(s_utc), end=UtcInstant(s_utc + duration))
            )
        return occurrences

    logger.warning(
        "Skipping recurrence of event %r: start and end are missing or in differing formats",
        base.summary,
    )
    return []


def expand_component(component: Any, max_occurrences: int = MAX_RECURRENCES) -> list[Occurrence]:
    """Expand one VEVENT into its occurrences.

    Non-recurring events, and events whose recurrence cannot be parsed,
    yield exactly the original event.

    Args:
        component: icalendar VEVENT
        max_occurrences: Upper bound on generated occurrences

    Returns:
        List of Occurrence objects
    """
    base = occurrence_from_component(component)
    spec = RecurrenceSpec.from_component(component)
    if not spec.is_recurring:
        return [base]

    try:
        starts = list(islice(spec.build_ruleset(), max_occurrences))
    except (RecurrenceParseError, ValueError, TypeError, OverflowError) as e:
        logger.debug("Recurrence of %r not expanded, using original event: %s", base.summary, e)
        return [base]

    occurrences = materialize_occurrences(base, starts)
    logger.debug("Expanded %r into %d occurrences", base.summary, len(occurrences))
    return occurrences
