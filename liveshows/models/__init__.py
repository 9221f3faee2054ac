"""Data models for the live shows discovery core."""

from .cache import CacheSnapshot, Coordinates
from .events import (
    Event,
    EventName,
    EventStart,
    SavedEntry,
    Venue,
    VenueAddress,
    clone_event,
    get_event_id,
    get_start_timestamp,
    normalize_event,
    normalize_events,
    parse_timestamp,
)
from .preferences import SearchPrefs, clamp_days, clamp_radius

__all__ = [
    "CacheSnapshot",
    "Coordinates",
    "Event",
    "EventName",
    "EventStart",
    "SavedEntry",
    "SearchPrefs",
    "Venue",
    "VenueAddress",
    "clamp_days",
    "clamp_radius",
    "clone_event",
    "get_event_id",
    "get_start_timestamp",
    "normalize_event",
    "normalize_events",
    "parse_timestamp",
]
