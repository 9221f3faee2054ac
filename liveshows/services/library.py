"""
Saved events, hidden events, and hidden genres.

Local storage is the source of truth. Saved/hidden mutations persist
immediately and then hand the full state to the remote mirror; a failed
mirror write never rolls back the local change.
"""

import logging
import math
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

from liveshows.models.events import (
    Event,
    SavedEntry,
    clone_event,
    get_event_id,
    get_start_timestamp,
    normalize_event,
)
from liveshows.services.event_cache import now_ms
from liveshows.services.remote_sync import RemoteMirror
from liveshows.services.storage import (
    SHOWS_HIDDEN_EVENTS_KEY,
    SHOWS_HIDDEN_GENRES_KEY,
    SHOWS_SAVED_EVENTS_KEY,
    KeyValueStore,
    load_json,
    store_json,
)

logger = logging.getLogger(__name__)


def _parse_saved_entries(raw: Any, clock: Callable[[], float]) -> dict[str, SavedEntry] | None:
    """Decode ``[{id, event, savedAt}]``; None if ``raw`` is not a list."""
    if not isinstance(raw, list):
        return None
    saved: dict[str, SavedEntry] = {}
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        entry_id = entry.get("id")
        event = normalize_event(entry.get("event"))
        if not entry_id or event is None:
            continue
        if not event.id:
            event = event.model_copy(update={"id": str(entry_id)})
        saved_at = entry.get("savedAt")
        if isinstance(saved_at, bool) or not isinstance(saved_at, (int, float)) or not math.isfinite(saved_at):
            saved_at = clock()
        saved[str(entry_id)] = SavedEntry(event=event, saved_at=saved_at)
    return saved


def _parse_id_list(raw: Any) -> set[str] | None:
    if not isinstance(raw, list):
        return None
    return {str(item) for item in raw}


class ShowsLibrary:
    """The user's saved map and hide lists."""

    def __init__(
        self,
        storage: KeyValueStore | None,
        mirror: RemoteMirror | None = None,
        clock: Callable[[], float] = now_ms,
    ):
        self.storage = storage
        self.mirror = mirror
        self.clock = clock
        self.saved: dict[str, SavedEntry] = {}
        self.hidden_event_ids: set[str] = set()
        self.hidden_genres: set[str] = set()

    # ------------------------------------------------------------------
    # Loading and persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Read all three collections from local storage."""
        self.saved = self.load_saved_events()
        self.hidden_event_ids = self.load_hidden_event_ids()
        self.hidden_genres = self.load_hidden_genres()

    def load_saved_events(self) -> dict[str, SavedEntry]:
        raw = load_json(self.storage, SHOWS_SAVED_EVENTS_KEY, "saved events")
        return _parse_saved_entries(raw, self.clock) or {}

    def load_hidden_event_ids(self) -> set[str]:
        raw = load_json(self.storage, SHOWS_HIDDEN_EVENTS_KEY, "hidden events")
        return _parse_id_list(raw) or set()

    def load_hidden_genres(self) -> set[str]:
        raw = load_json(self.storage, SHOWS_HIDDEN_GENRES_KEY, "hidden genres")
        if not isinstance(raw, list):
            return set()
        return {genre.lower() for genre in raw if isinstance(genre, str)}

    def _saved_payload(self) -> list[dict[str, Any]]:
        return [
            {"id": event_id, "event": entry.event.to_payload(), "savedAt": entry.saved_at}
            for event_id, entry in self.saved.items()
        ]

    def persist_saved_events(self) -> bool:
        return store_json(self.storage, SHOWS_SAVED_EVENTS_KEY, self._saved_payload(), "saved events")

    def persist_hidden_event_ids(self) -> bool:
        return store_json(
            self.storage, SHOWS_HIDDEN_EVENTS_KEY, sorted(self.hidden_event_ids), "hidden events"
        )

    def persist_hidden_genres(self) -> bool:
        return store_json(
            self.storage, SHOWS_HIDDEN_GENRES_KEY, sorted(self.hidden_genres), "hidden genres"
        )

    def document(self) -> dict[str, Any]:
        """Remote document body for the current state."""
        return {
            "savedEvents": self._saved_payload(),
            "hiddenEventIds": sorted(self.hidden_event_ids),
            "updatedAt": datetime.now(UTC).isoformat(),
        }

    def _mirror(self) -> None:
        if self.mirror is not None:
            self.mirror.submit(self.document())

    async def sync_from_remote(self) -> bool:
        """Adopt the remote document's saved/hidden state, if any.

        Returns True when local state was replaced.
        """
        if self.mirror is None:
            return False
        data = await self.mirror.load()
        if not isinstance(data, dict):
            return False

        changed = False
        saved = _parse_saved_entries(data.get("savedEvents"), self.clock)
        if saved is not None:
            self.saved = saved
            self.persist_saved_events()
            changed = True
        hidden = _parse_id_list(data.get("hiddenEventIds"))
        if hidden is not None:
            self.hidden_event_ids = hidden
            self.persist_hidden_event_ids()
            changed = True
        if changed:
            logger.info(
                "Synced %d saved and %d hidden events from remote",
                len(self.saved),
                len(self.hidden_event_ids),
            )
        return changed

    # ------------------------------------------------------------------
    # Saved events
    # ------------------------------------------------------------------

    def is_saved(self, event_id: str) -> bool:
        return event_id in self.saved

    def save(self, event: Event) -> bool:
        """Save a detached copy of ``event``. False if it was already saved."""
        event_id = get_event_id(event)
        if event_id in self.saved:
            return False
        saved_copy = clone_event(event)
        if not saved_copy.id:
            saved_copy.id = event_id
        self.saved[event_id] = SavedEntry(event=saved_copy, saved_at=self.clock())
        self.persist_saved_events()
        self._mirror()
        return True

    def unsave(self, event_id: str) -> bool:
        if self.saved.pop(event_id, None) is None:
            return False
        self.persist_saved_events()
        self._mirror()
        return True

    def toggle_save(self, event: Event) -> bool:
        """Save or unsave. Returns whether the event is saved afterwards."""
        event_id = get_event_id(event)
        if event_id in self.saved:
            self.unsave(event_id)
            return False
        return self.save(event)

    def saved_events(self) -> list[Event]:
        """Saved events by start time, then save time; undated last."""

        def sort_value(entry: SavedEntry) -> float:
            start = get_start_timestamp(entry.event)
            if start is not None:
                return start
            if math.isfinite(entry.saved_at):
                return entry.saved_at
            return math.inf

        return [entry.event for entry in sorted(self.saved.values(), key=sort_value)]

    def refresh_from_fetch(self, events: Iterable[Event]) -> int:
        """Replace saved payloads with freshly fetched copies.

        ``saved_at`` is kept; saved events missing from the fetch stay as
        they are. Returns the number of entries refreshed.
        """
        if not self.saved:
            return 0
        refreshed = 0
        for event in events:
            event_id = get_event_id(event)
            existing = self.saved.get(event_id)
            if existing is None:
                continue
            fresh_copy = clone_event(event)
            if not fresh_copy.id:
                fresh_copy.id = event_id
            self.saved[event_id] = SavedEntry(event=fresh_copy, saved_at=existing.saved_at)
            refreshed += 1
        if refreshed:
            self.persist_saved_events()
            self._mirror()
            logger.debug("Refreshed %d saved events from fetch", refreshed)
        return refreshed

    # ------------------------------------------------------------------
    # Hidden events and genres
    # ------------------------------------------------------------------

    def hide_event(self, event: Event | str) -> None:
        """Hide an event for good. A saved copy is dropped in the same step."""
        event_id = event if isinstance(event, str) else get_event_id(event)
        self.hidden_event_ids.add(event_id)
        was_saved = self.saved.pop(event_id, None) is not None
        self.persist_hidden_event_ids()
        if was_saved:
            self.persist_saved_events()
        self._mirror()

    def hide_genre(self, genre: str) -> bool:
        key = genre.strip().lower()
        if not key or key in self.hidden_genres:
            return False
        self.hidden_genres.add(key)
        self.persist_hidden_genres()
        return True

    def restore_genre(self, genre: str) -> bool:
        key = genre.strip().lower()
        if key not in self.hidden_genres:
            return False
        self.hidden_genres.discard(key)
        self.persist_hidden_genres()
        return True
