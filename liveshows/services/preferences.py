"""Persistence of the user's search radius and day window."""

import logging
from datetime import date, timedelta

from liveshows.models.preferences import SearchPrefs, clamp_days
from liveshows.services.storage import (
    SHOWS_SEARCH_PREFS_KEY,
    KeyValueStore,
    load_json,
    store_json,
)

logger = logging.getLogger(__name__)


class PreferenceStore:
    """Loads and persists SearchPrefs. Values are clamped both ways."""

    def __init__(self, storage: KeyValueStore | None):
        self.storage = storage

    def load(self) -> SearchPrefs:
        """Stored preferences, or defaults when missing or malformed."""
        parsed = load_json(self.storage, SHOWS_SEARCH_PREFS_KEY, "shows search preferences")
        if not isinstance(parsed, dict):
            return SearchPrefs()
        return SearchPrefs(radius=parsed.get("radius"), days=parsed.get("days"))

    def save(self, prefs: SearchPrefs) -> bool:
        clamped = SearchPrefs(radius=prefs.radius, days=prefs.days)
        return store_json(
            self.storage,
            SHOWS_SEARCH_PREFS_KEY,
            clamped.model_dump(),
            "shows search preferences",
        )


def days_from_date_input(value: str | None, today: date | None = None) -> int | None:
    """Convert a ``YYYY-MM-DD`` pick into a clamped day window.

    Returns None when the value is empty or not a date.
    """
    if not value:
        return None
    try:
        picked = date.fromisoformat(value.strip())
    except ValueError:
        logger.debug("Ignoring unparseable date input: %r", value)
        return None
    today = today or date.today()
    return clamp_days((picked - today).days)


def date_input_from_days(days: int, today: date | None = None) -> str:
    """Inverse of ``days_from_date_input`` for a clamped window."""
    today = today or date.today()
    return (today + timedelta(days=clamp_days(days))).isoformat()
