"""Data models for the event feed."""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class PlainDate:
    """Calendar date without a time of day (``VALUE=DATE``)."""

    value: date

    def sort_timestamp(self) -> int:
        """Return epoch seconds of UTC midnight of this date."""
        return int(datetime(self.value.year, self.value.month, self.value.day, tzinfo=UTC).timestamp())


@dataclass(frozen=True)
class UtcInstant:
    """Point in time in UTC, truncated to whole seconds."""

    value: datetime

    def __post_init__(self) -> None:
        if self.value.tzinfo is None:
            raise ValueError("UtcInstant requires a timezone-aware datetime")
        normalized = self.value.astimezone(UTC).replace(microsecond=0)
        object.__setattr__(self, "value", normalized)

    @classmethod
    def from_timestamp(cls, seconds: int) -> "UtcInstant":
        return cls(datetime.fromtimestamp(seconds, tz=UTC))

    def sort_timestamp(self) -> int:
        return int(self.value.timestamp())


EventDate = Union[PlainDate, UtcInstant]


@dataclass(frozen=True)
class Occurrence:
    """One concrete instance of an event with its own start and end.

    Descriptive fields are copied from the source VEVENT so that expanded
    occurrences do not share state with the calendar component.
    """

    summary: Optional[str]
    description: Optional[str]
    location: Optional[str]
    start: Optional[EventDate]
    end: Optional[EventDate]


class SpaceEntry(BaseModel):
    """Location registry entry: a label prefix and the space id it links to."""

    label_prefix: str = Field(..., min_length=1, description="Literal, case-sensitive label prefix")
    id: str = Field(..., description="Registry id of the space")

    model_config = ConfigDict(frozen=True)


class EventLocation(BaseModel):
    """Location text with a resolvable link."""

    text: str = Field(..., serialization_alias="string", description="Location as written")
    url: str = Field(..., description="Registry or map-search URL")


class FeedEvent(BaseModel):
    """Display-ready event record served by ``GET /events``."""

    summary: str = Field(..., description="Event title")
    display_date: str = Field(
        ..., serialization_alias="date", description="Human readable date/time range"
    )
    start_iso8601: str = Field(..., description="Start as ISO 8601 date or RFC 3339 instant")
    end_iso8601: str = Field(..., description="End as ISO 8601 date or RFC 3339 instant")
    location: Optional[EventLocation] = Field(default=None, description="Location with link")
    description: Optional[str] = Field(default=None, description="Event description")

    def to_json_dict(self) -> dict:
        """Serialize with wire names, omitting absent optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)
