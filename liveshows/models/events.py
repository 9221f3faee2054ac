"""Event models and the normalization applied once at ingestion."""

import logging
import math
from datetime import datetime
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

logger = logging.getLogger(__name__)


def _string_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _mapping_or_none(value: Any) -> Any:
    return value if isinstance(value, (dict, BaseModel)) else None


OptionalText = Annotated[str | None, BeforeValidator(_string_or_none)]


class EventName(BaseModel):
    """Display name of an event."""

    model_config = ConfigDict(extra="allow")

    text: OptionalText = None


class EventStart(BaseModel):
    """Start time as reported by the provider (ISO 8601 strings)."""

    model_config = ConfigDict(extra="allow")

    local: OptionalText = None
    utc: OptionalText = None


class VenueAddress(BaseModel):
    model_config = ConfigDict(extra="allow")

    city: OptionalText = None
    region: OptionalText = None


class Venue(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: OptionalText = None
    address: Annotated[VenueAddress | None, BeforeValidator(_mapping_or_none)] = None


class Event(BaseModel):
    """A live event listing.

    Unknown provider fields are preserved so a saved or cached copy
    round-trips the full payload. Fields with an unexpected type are
    treated as absent rather than rejected.
    """

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    name: EventName | None = None
    start: EventStart | None = None
    venue: Venue | None = None
    distance: float | None = Field(default=None, description="Distance in miles")
    genres: list[str] = Field(default_factory=list)
    url: OptionalText = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str | None:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return str(value)
        return _string_or_none(value)

    @field_validator("name", "start", "venue", mode="before")
    @classmethod
    def _coerce_nested(cls, value: Any) -> Any:
        return _mapping_or_none(value)

    @field_validator("distance", mode="before")
    @classmethod
    def _coerce_distance(cls, value: Any) -> float | None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if not math.isfinite(value):
            return None
        return float(value)

    @field_validator("genres", mode="before")
    @classmethod
    def _coerce_genres(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [genre for genre in value if isinstance(genre, str)]

    @property
    def identity(self) -> str:
        """Stable key for this event."""
        return get_event_id(self)

    @property
    def title(self) -> str:
        if self.name and self.name.text and self.name.text.strip():
            return self.name.text.strip()
        return "Live show"

    def to_payload(self) -> dict[str, Any]:
        """JSON-compatible dict, as stored in caches and documents."""
        return self.model_dump(mode="json", exclude_none=True)


class SavedEntry(BaseModel):
    """An event the user saved, with the time it was saved."""

    event: Event
    saved_at: float = Field(description="Epoch milliseconds")


def get_event_id(event: Event) -> str:
    """Derive an event's identity.

    Uses the provider id when present, then the event URL, then a
    ``name::start`` composite.
    """
    if event.id and event.id.strip():
        return event.id.strip()
    if event.url:
        return f"url::{event.url}"
    name = event.name.text.strip() if event.name and event.name.text is not None else "event"
    start = ""
    if event.start:
        start = event.start.local or event.start.utc or ""
    return f"{name}::{start}"


def parse_timestamp(value: str | None) -> float | None:
    """Parse an ISO 8601 string to epoch milliseconds.

    Naive values are interpreted in local time.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
        if parsed.tzinfo is None:
            parsed = parsed.astimezone()
        return parsed.timestamp() * 1000
    except (ValueError, OverflowError, OSError):
        return None


def get_start_timestamp(event: Event) -> float | None:
    """Start of the event in epoch milliseconds, or None if unknown."""
    if event.start is None:
        return None
    return parse_timestamp(event.start.utc or event.start.local)


def clone_event(event: Event) -> Event:
    """Deep copy through JSON so the copy shares nothing with the source."""
    return Event.model_validate_json(event.model_dump_json())


def normalize_event(raw: Any) -> Event | None:
    """Validate one raw record; returns None for records that are not objects."""
    if isinstance(raw, Event):
        return raw
    if not isinstance(raw, dict):
        return None
    try:
        return Event.model_validate(raw)
    except ValidationError as e:
        logger.debug("Dropping malformed event record: %s", e)
        return None


def normalize_events(raw_events: Any) -> list[Event]:
    """Validate a raw list of event records, skipping malformed entries."""
    if not isinstance(raw_events, list):
        return []
    events = []
    for raw in raw_events:
        event = normalize_event(raw)
        if event is not None:
            events.append(event)
    return events
