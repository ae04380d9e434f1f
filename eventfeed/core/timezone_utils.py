"""Timezone resolution and clock utilities for eventfeed."""

from __future__ import annotations

import datetime
import logging
import os
import zoneinfo
from functools import lru_cache

logger = logging.getLogger(__name__)


class TimeProvider:
    """Provides current time with test time override support."""

    def now_utc(self) -> datetime.datetime:
        """Return current UTC time with tzinfo.

        Can be overridden via the EVENTFEED_TEST_TIME environment variable
        (ISO 8601, e.g. "2026-02-02T16:32:11Z"). A naive value is taken as UTC.

        Returns:
            Current time in UTC with timezone info
        """
        test_time = os.environ.get("EVENTFEED_TEST_TIME")
        if test_time:
            try:
                from dateutil import parser as date_parser

                dt = date_parser.isoparse(test_time)
                if dt.tzinfo is not None:
                    return dt.astimezone(datetime.UTC)
                return dt.replace(tzinfo=datetime.UTC)
            except (ValueError, OverflowError) as e:
                logger.warning("Failed to parse EVENTFEED_TEST_TIME=%r: %s", test_time, e)

        return datetime.datetime.now(datetime.UTC)


_time_provider = TimeProvider()


def now_utc() -> datetime.datetime:
    """Get current UTC time (convenience function)."""
    return _time_provider.now_utc()


@lru_cache(maxsize=64)
def resolve_timezone(tz_name: str | None) -> zoneinfo.ZoneInfo | None:
    """Resolve an IANA timezone identifier.

    Args:
        tz_name: Identifier such as "Europe/Helsinki"

    Returns:
        ZoneInfo for the identifier, or None when it is empty or unknown
    """
    if not tz_name:
        return None
    try:
        return zoneinfo.ZoneInfo(tz_name.strip())
    except (zoneinfo.ZoneInfoNotFoundError, ValueError, OSError):
        logger.debug("Unknown timezone identifier %r", tz_name)
        return None


def get_display_timezone(tz_name: str | None = None) -> datetime.tzinfo:
    """Timezone used to render display dates.

    Falls back to the server's local timezone when no (valid) name is given.
    """
    tz = resolve_timezone(tz_name)
    if tz is not None:
        return tz
    if tz_name:
        logger.warning("Invalid display timezone %r, using server local time", tz_name)
    local_tz = datetime.datetime.now().astimezone().tzinfo
    return local_tz if local_tz is not None else datetime.UTC
