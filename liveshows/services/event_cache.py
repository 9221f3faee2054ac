"""
Local snapshot cache of the last successful discovery.

One snapshot is kept under a single key and replaced wholesale on every
successful fetch. A snapshot can serve a request without a network call
only when it is both fresh and covers the requested radius/day window.
"""

import logging
import math
import time
from typing import Any

from liveshows.models.cache import CacheSnapshot, Coordinates
from liveshows.models.events import Event, normalize_events
from liveshows.models.preferences import (
    DEFAULT_LOOKAHEAD_DAYS,
    DEFAULT_RADIUS_MILES,
    SearchPrefs,
    clamp_days,
    clamp_radius,
)
from liveshows.services.storage import (
    SHOWS_CACHE_KEY,
    KeyValueStore,
    load_json,
    remove_key,
    store_json,
)

logger = logging.getLogger(__name__)

# Default TTL: 8 hours
DEFAULT_TTL_MS = 8 * 60 * 60 * 1000


def now_ms() -> float:
    """Current time in epoch milliseconds."""
    return time.time() * 1000


def _finite_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def is_fresh(
    snapshot: CacheSnapshot | None,
    ttl_ms: float = DEFAULT_TTL_MS,
    now: float | None = None,
) -> bool:
    """True if the snapshot was fetched less than ``ttl_ms`` ago."""
    if snapshot is None:
        return False
    fetched_at = _finite_number(snapshot.fetched_at)
    if fetched_at is None:
        return False
    current = now_ms() if now is None else now
    return current - fetched_at < ttl_ms


def covers(snapshot: CacheSnapshot | None, prefs: SearchPrefs | None) -> bool:
    """True if the snapshot's radius and day window include ``prefs``.

    Missing cached values count as the default preferences.
    """
    if snapshot is None or prefs is None:
        return False
    cached_radius = _finite_number(snapshot.radius_miles)
    cached_days = _finite_number(snapshot.days)
    if cached_radius is None:
        cached_radius = DEFAULT_RADIUS_MILES
    if cached_days is None:
        cached_days = DEFAULT_LOOKAHEAD_DAYS
    return cached_radius >= clamp_radius(prefs.radius) and cached_days >= clamp_days(prefs.days)


def is_usable(
    snapshot: CacheSnapshot | None,
    prefs: SearchPrefs,
    ttl_ms: float = DEFAULT_TTL_MS,
    now: float | None = None,
) -> bool:
    """Fresh and covering: the snapshot can stand in for a fetch."""
    return is_fresh(snapshot, ttl_ms, now) and covers(snapshot, prefs)


class EventCache:
    """Reads and writes the discovery snapshot in key-value storage."""

    def __init__(self, storage: KeyValueStore | None, ttl_ms: float = DEFAULT_TTL_MS):
        """Initialize the cache.

        Args:
            storage: Key-value store holding the snapshot
            ttl_ms: Milliseconds until a snapshot is stale
        """
        self.storage = storage
        self.ttl_ms = ttl_ms

    def load(self) -> CacheSnapshot | None:
        """The stored snapshot, or None when absent or malformed."""
        parsed = load_json(self.storage, SHOWS_CACHE_KEY, "cached live events")
        if not isinstance(parsed, dict) or not isinstance(parsed.get("events"), list):
            return None

        location = None
        raw_location = parsed.get("location")
        if isinstance(raw_location, dict):
            latitude = _finite_number(raw_location.get("latitude"))
            longitude = _finite_number(raw_location.get("longitude"))
            if latitude is not None and longitude is not None:
                location = Coordinates(latitude=latitude, longitude=longitude)

        return CacheSnapshot(
            events=normalize_events(parsed["events"]),
            fetched_at=_finite_number(parsed.get("fetchedAt")),
            location=location,
            radius_miles=_finite_number(parsed.get("radiusMiles")),
            days=_finite_number(parsed.get("days")),
        )

    def save(
        self,
        events: list[Event],
        *,
        location: Coordinates | None = None,
        fetched_at: float | None = None,
        radius_miles: float | None = None,
        days: float | None = None,
    ) -> CacheSnapshot:
        """Replace the stored snapshot.

        Returns the snapshot as written, even if storage rejected it.
        """
        radius = _finite_number(radius_miles)
        window = _finite_number(days)
        snapshot = CacheSnapshot(
            events=list(events or []),
            fetched_at=now_ms() if fetched_at is None else fetched_at,
            location=location,
            radius_miles=DEFAULT_RADIUS_MILES if radius is None else radius,
            days=DEFAULT_LOOKAHEAD_DAYS if window is None else window,
        )
        payload = {
            "events": [event.to_payload() for event in snapshot.events],
            "fetchedAt": snapshot.fetched_at,
            "location": snapshot.location.model_dump() if snapshot.location else None,
            "radiusMiles": snapshot.radius_miles,
            "days": snapshot.days,
        }
        if store_json(self.storage, SHOWS_CACHE_KEY, payload, "live events cache"):
            logger.debug("Cached %d events", len(snapshot.events))
        return snapshot

    def clear(self) -> bool:
        return remove_key(self.storage, SHOWS_CACHE_KEY, "live events cache")

    def is_usable_for(self, prefs: SearchPrefs, now: float | None = None) -> bool:
        return is_usable(self.load(), prefs, self.ttl_ms, now)
