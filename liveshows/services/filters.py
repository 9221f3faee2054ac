"""
Event filter pipeline.

Stages run in a fixed order:

1. view selection (saved view swaps in the saved list)
2. temporal: drop events that already started
3. window: drop events past the day window or beyond the radius
4. hidden events
5. calendar-day reordering (saved view only)
6. genre facets (all view only)

Every stage returns a new list and leaves the events themselves untouched.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal

from liveshows.models.events import Event, get_event_id, get_start_timestamp
from liveshows.models.preferences import SearchPrefs, clamp_days, clamp_radius

logger = logging.getLogger(__name__)

MS_PER_DAY = 24 * 60 * 60 * 1000

# Placeholder labels some providers emit for every event
IGNORED_GENRE_NAMES = frozenset({"undefined", "music", "event style"})

View = Literal["all", "saved"]
GenreSelection = frozenset[str] | None


@dataclass(frozen=True)
class CalendarDay:
    """A local calendar day picked in the saved view."""

    year: int
    month: int
    day: int

    @classmethod
    def from_date(cls, value: date) -> "CalendarDay":
        return cls(value.year, value.month, value.day)

    def contains(self, timestamp_ms: float | None) -> bool:
        local = local_datetime(timestamp_ms)
        if local is None:
            return False
        return (local.year, local.month, local.day) == (self.year, self.month, self.day)


def local_datetime(timestamp_ms: float | None) -> datetime | None:
    """Naive local datetime for epoch milliseconds, or None if out of range."""
    if timestamp_ms is None:
        return None
    try:
        return datetime.fromtimestamp(timestamp_ms / 1000)
    except (ValueError, OverflowError, OSError):
        return None


def _now_ms(now: datetime | None) -> float:
    return (now or datetime.now().astimezone()).timestamp() * 1000


def start_of_today_ms(now: datetime | None = None) -> float:
    """Local midnight of the current day, in epoch milliseconds."""
    current = (now or datetime.now().astimezone()).astimezone()
    midnight = current.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.timestamp() * 1000


def window_end_ms(days: int, now: datetime | None = None) -> float:
    """Last millisecond included by a ``days`` window.

    The window runs from local midnight through the end of day ``days``,
    so ``days=0`` covers the rest of today.
    """
    return start_of_today_ms(now) + (clamp_days(days) + 1) * MS_PER_DAY - 1


# ============================================================================
# Stages
# ============================================================================


def filter_upcoming(events: Iterable[Event], now: datetime | None = None) -> list[Event]:
    """Drop events that started before now. Unknown start times are kept."""
    current = _now_ms(now)
    upcoming = []
    for event in events:
        timestamp = get_start_timestamp(event)
        if timestamp is None or timestamp >= current:
            upcoming.append(event)
    return upcoming


def filter_by_preferences(
    events: Iterable[Event],
    prefs: SearchPrefs,
    now: datetime | None = None,
) -> list[Event]:
    """Apply the day window and radius. Missing start or distance passes."""
    max_radius = clamp_radius(prefs.radius)
    search_end = window_end_ms(prefs.days, now)
    kept = []
    for event in events:
        timestamp = get_start_timestamp(event)
        if timestamp is not None and timestamp > search_end:
            continue
        if event.distance is not None and event.distance > max_radius:
            continue
        kept.append(event)
    return kept


def filter_hidden(events: Iterable[Event], hidden_event_ids: Iterable[str]) -> list[Event]:
    hidden = set(hidden_event_ids)
    return [event for event in events if get_event_id(event) not in hidden]


def order_by_calendar_day(events: list[Event], day: CalendarDay | None) -> list[Event]:
    """Move events on ``day`` to the front; everything else follows in order."""
    if day is None:
        return list(events)
    on_day = []
    others = []
    for event in events:
        (on_day if day.contains(get_start_timestamp(event)) else others).append(event)
    return on_day + others


def get_event_genres(event: Event, hidden_genres: Iterable[str] = ()) -> list[str]:
    """Effective genres: trimmed, case-insensitively unique, minus ignored/hidden."""
    hidden = {genre.lower() for genre in hidden_genres}
    seen: set[str] = set()
    genres = []
    for raw in event.genres:
        genre = raw.strip()
        key = genre.lower()
        if not genre or key in IGNORED_GENRE_NAMES or key in hidden or key in seen:
            continue
        seen.add(key)
        genres.append(genre)
    return genres


def filter_by_genres(
    events: Iterable[Event],
    selection: GenreSelection,
    hidden_genres: Iterable[str] = (),
) -> list[Event]:
    """Keep events with at least one selected genre (exact match).

    A None selection keeps everything. With any selection active, events
    without an effective genre never match.
    """
    if selection is None:
        return list(events)
    if not selection:
        return []
    hidden = frozenset(hidden_genres)
    return [
        event
        for event in events
        if any(genre in selection for genre in get_event_genres(event, hidden))
    ]


def apply_pipeline(
    events: Iterable[Event],
    *,
    view: View = "all",
    prefs: SearchPrefs,
    hidden_event_ids: Iterable[str] = (),
    hidden_genres: Iterable[str] = (),
    genre_selection: GenreSelection = None,
    saved_events: Iterable[Event] | None = None,
    calendar_day: CalendarDay | None = None,
    now: datetime | None = None,
) -> list[Event]:
    """Run every stage and return the events to display.

    Args:
        events: Fetched or cached events (ignored in the saved view)
        view: "all" or "saved"
        prefs: Radius/day window
        hidden_event_ids: Identities never to show
        hidden_genres: Lower-cased genres removed from facets
        genre_selection: Facet selection, None for all
        saved_events: Saved list, already sorted, used by the saved view
        calendar_day: Day to float to the top in the saved view
        now: Reference time (defaults to the current local time)
    """
    working = list(saved_events or []) if view == "saved" else list(events)
    upcoming = filter_upcoming(working, now)
    in_window = filter_by_preferences(upcoming, prefs, now)
    visible = filter_hidden(in_window, hidden_event_ids)

    if view == "saved":
        return order_by_calendar_day(visible, calendar_day)
    return filter_by_genres(visible, genre_selection, hidden_genres)


# ============================================================================
# Facet helpers
# ============================================================================


def genre_counts(events: Iterable[Event], hidden_genres: Iterable[str] = ()) -> dict[str, int]:
    """Number of events per effective genre, keyed in alphabetical order."""
    hidden = frozenset(hidden_genres)
    counts: dict[str, int] = {}
    for event in events:
        for genre in get_event_genres(event, hidden):
            counts[genre] = counts.get(genre, 0) + 1
    return {genre: counts[genre] for genre in sorted(counts, key=str.casefold)}


def toggle_genre(
    selection: GenreSelection,
    genre: str,
    checked: bool,
    available: Iterable[str],
) -> GenreSelection:
    """Next facet selection after (un)checking one genre.

    Starting from "all" expands to the explicit available set first.
    Selecting every available genre collapses back to None.
    """
    available_set = frozenset(available)
    current = set(available_set) if selection is None else set(selection)
    if checked:
        current.add(genre)
    else:
        current.discard(genre)
    if current == available_set:
        return None
    return frozenset(current)


@dataclass
class CalendarMonth:
    year: int
    month: int
    day_counts: dict[int, int]


def saved_calendar_months(
    events: Iterable[Event],
    today: date | None = None,
    months: int = 3,
) -> list[CalendarMonth]:
    """Per-day counts of upcoming saved events for the calendar sidebar.

    Always includes the current month and the following ``months - 1``;
    later months appear only when they hold an event.
    """
    today = today or date.today()
    start_of_today = datetime(today.year, today.month, today.day).timestamp() * 1000
    by_month: dict[tuple[int, int], CalendarMonth] = {}

    def add_month(year: int, month: int) -> CalendarMonth:
        key = (year, month)
        if key not in by_month:
            by_month[key] = CalendarMonth(year=year, month=month, day_counts={})
        return by_month[key]

    for offset in range(months):
        year_offset, month_index = divmod(today.month - 1 + offset, 12)
        add_month(today.year + year_offset, month_index + 1)

    for event in events:
        timestamp = get_start_timestamp(event)
        if timestamp is None or timestamp < start_of_today:
            continue
        local = local_datetime(timestamp)
        if local is None:
            continue
        month_data = add_month(local.year, local.month)
        month_data.day_counts[local.day] = month_data.day_counts.get(local.day, 0) + 1

    return [by_month[key] for key in sorted(by_month)]
