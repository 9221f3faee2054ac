"""
Discovery orchestrator: decides per user action whether to serve from the
local cache or go to the network, and applies the filter pipeline to produce
what is shown.

All mutable state lives on a DiscoverySession owned by the orchestrator:

- Idle -> Discovering on refresh, on a preference change the cache cannot
  satisfy, or on first load without a fresh, covering cache
- a discovery requested while one is in flight is dropped (single flight)
- success replaces the working set, refreshes saved copies, rewrites the
  cache snapshot, and resets the genre facets
- failure sets an error status and clears the list; there is no retry
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from liveshows.config import Settings, get_settings
from liveshows.errors import ShowsError
from liveshows.models.cache import CacheSnapshot
from liveshows.models.events import Event
from liveshows.models.preferences import SearchPrefs
from liveshows.services.endpoint import resolve_from_settings
from liveshows.services.event_cache import EventCache, is_usable, now_ms
from liveshows.services.filters import (
    CalendarDay,
    CalendarMonth,
    GenreSelection,
    View,
    apply_pipeline,
    filter_by_genres,
    genre_counts,
    saved_calendar_months,
    toggle_genre,
)
from liveshows.services.geolocation import LocationProvider, request_location
from liveshows.services.library import ShowsLibrary
from liveshows.services.preferences import PreferenceStore, days_from_date_input
from liveshows.services.remote_sync import RemoteMirror
from liveshows.services.shows_client import ShowsClient
from liveshows.services.storage import KeyValueStore

from .status import events_summary_text

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable[str | None]]
Source = Literal["remote", "cache"]

CHECKING_STATUS = "Checking for new shows in your area..."
NO_NEW_EVENTS_STATUS = "No events to review. Expand filters to see more events."
GENERIC_ERROR_STATUS = "Unable to load live events."


@dataclass
class Status:
    message: str = ""
    tone: Literal["info", "error"] = "info"


@dataclass
class DiscoverySession:
    """Process-lifetime state of one shows panel."""

    prefs: SearchPrefs = field(default_factory=SearchPrefs)
    view: View = "all"
    latest_events: list[Event] = field(default_factory=list)
    genre_selection: GenreSelection = None
    calendar_day: CalendarDay | None = None
    is_discovering: bool = False
    status: Status = field(default_factory=Status)
    last_source: Source = "remote"
    last_fetched_at: float | None = None


@dataclass
class DiscoveryOutcome:
    """What a discovery cycle did."""

    source: Literal["remote", "cache", "error"]
    event_count: int = 0
    error: ShowsError | None = None


@dataclass
class ShowsView:
    """Everything the presentation layer needs for one render."""

    view: View
    events: list[Event]
    status: Status
    summary: str
    genre_counts: dict[str, int] = field(default_factory=dict)
    genre_selection: GenreSelection = None
    hidden_genres: list[str] = field(default_factory=list)
    saved_calendar: list[CalendarMonth] = field(default_factory=list)


class ShowsDiscovery:
    """Coordinates preferences, cache, network fetches, and the saved library.

    Usage:
        async with ShowsDiscovery(storage=SQLiteStorage(path),
                                  location_provider=provider) as discovery:
            view = await discovery.initialize()
            await discovery.set_radius(50)
            view = discovery.render()
    """

    def __init__(
        self,
        *,
        storage: KeyValueStore | None,
        location_provider: LocationProvider | None = None,
        shows_client: ShowsClient | None = None,
        mirror: RemoteMirror | None = None,
        token_provider: TokenProvider | None = None,
        settings: Settings | None = None,
        clock: Callable[[], float] = now_ms,
    ):
        self.settings = settings or get_settings()
        self.clock = clock
        self.session = DiscoverySession()
        self.preferences = PreferenceStore(storage)
        self.cache = EventCache(storage, ttl_ms=self.settings.cache_ttl_ms)
        self.mirror = mirror
        self.library = ShowsLibrary(storage, mirror=mirror, clock=clock)
        self.location_provider = location_provider
        self.client = shows_client or ShowsClient(timeout=self.settings.http_timeout_seconds)
        self.token_provider = token_provider or self._static_token_provider()
        self._initialized = False
        self._warned_auth_unavailable = False

    async def __aenter__(self) -> "ShowsDiscovery":
        if self.mirror is not None:
            await self.mirror.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Drain pending remote writes and release the HTTP client."""
        if self.mirror is not None:
            await self.mirror.close()
        await self.client.close()

    def _static_token_provider(self) -> TokenProvider | None:
        token = self.settings.auth_token
        if not token:
            return None

        async def provide() -> str | None:
            return token

        return provide

    def _set_status(self, message: str, tone: Literal["info", "error"] = "info") -> None:
        self.session.status = Status(message=message, tone=tone)

    def _cache_is_usable(self, snapshot: CacheSnapshot, prefs: SearchPrefs) -> bool:
        return bool(snapshot.events) and is_usable(snapshot, prefs, self.cache.ttl_ms, self.clock())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self, view: View | None = None) -> ShowsView:
        """Load local state, sync the remote document, and show events.

        Fetches only when no fresh cache covers the stored preferences.
        Calling it again just re-renders.
        """
        if self._initialized:
            return self.render()
        self._initialized = True

        self.library.load()
        await self.library.sync_from_remote()
        self.session.prefs = self.preferences.load()
        if view is not None:
            self.session.view = view

        cached = self.cache.load()
        if cached is not None and cached.events:
            self.session.latest_events = cached.events
            self.session.last_source = "cache"
            self.session.last_fetched_at = cached.fetched_at
            self.session.prefs = SearchPrefs(
                radius=cached.radius_miles or self.session.prefs.radius,
                days=cached.days or self.session.prefs.days,
            )
            self.preferences.save(self.session.prefs)

        if cached is None or not self._cache_is_usable(cached, self.session.prefs):
            await self.discover()
        return self.render()

    async def discover(
        self,
        radius: int | None = None,
        days: int | None = None,
        force_refresh: bool = False,
    ) -> DiscoveryOutcome | None:
        """Run one discovery cycle.

        Returns None when another cycle is already in flight.
        """
        if self.session.is_discovering:
            logger.debug("Discovery already in flight; ignoring trigger")
            return None
        self.session.is_discovering = True
        try:
            prefs = SearchPrefs(
                radius=self.session.prefs.radius if radius is None else radius,
                days=self.session.prefs.days if days is None else days,
            )
            self.session.prefs = prefs
            self.preferences.save(prefs)
            self._set_status(CHECKING_STATUS)

            cached = self.cache.load()
            if not force_refresh and cached is not None and self._cache_is_usable(cached, prefs):
                self.session.latest_events = cached.events
                self.session.genre_selection = None
                self.session.last_source = "cache"
                self.session.last_fetched_at = cached.fetched_at
                self._set_status("")
                logger.info("Serving %d cached events", len(cached.events))
                return DiscoveryOutcome(source="cache", event_count=len(cached.events))

            return await self._fetch(prefs)
        finally:
            self.session.is_discovering = False

    async def refresh(self) -> DiscoveryOutcome | None:
        """Explicit "check for new events": always goes to the network."""
        return await self.discover(force_refresh=True)

    async def _get_token(self) -> str | None:
        if self.token_provider is None:
            return None
        try:
            return await self.token_provider()
        except Exception as e:
            if not self._warned_auth_unavailable:
                self._warned_auth_unavailable = True
                logger.warning("Auth unavailable for remote shows request: %s", e)
            return None

    async def _fetch(self, prefs: SearchPrefs) -> DiscoveryOutcome:
        try:
            location = await request_location(
                self.location_provider, self.settings.geolocation_timeout_seconds
            )
            resolved = resolve_from_settings(self.settings)
            token = await self._get_token() if resolved.is_remote else None
            events = await self.client.fetch_events(
                resolved.endpoint, location, prefs.radius, prefs.days, token=token
            )
        except ShowsError as e:
            logger.error("Unable to load live events: %s", e)
            self._set_status(e.user_message, "error")
            self.session.latest_events = []
            return DiscoveryOutcome(source="error", error=e)
        except Exception as e:
            logger.error("Unexpected error loading live events: %s", e, exc_info=True)
            self._set_status(GENERIC_ERROR_STATUS, "error")
            self.session.latest_events = []
            return DiscoveryOutcome(source="error", error=ShowsError(GENERIC_ERROR_STATUS))

        fetched_at = self.clock()
        self.session.latest_events = events
        self.library.refresh_from_fetch(events)
        self.cache.save(
            events,
            location=location,
            fetched_at=fetched_at,
            radius_miles=prefs.radius,
            days=prefs.days,
        )
        self.session.genre_selection = None
        self.session.last_source = "remote"
        self.session.last_fetched_at = fetched_at
        self._set_status(NO_NEW_EVENTS_STATUS if not events else "")
        return DiscoveryOutcome(source="remote", event_count=len(events))

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    async def update_prefs(
        self,
        radius: int | None = None,
        days: int | None = None,
    ) -> DiscoveryOutcome | None:
        """Apply new search preferences.

        Re-renders from the cache when it still covers the new window;
        otherwise fetches. Returns None when no fetch happened.
        """
        current = self.session.prefs
        desired = SearchPrefs(
            radius=current.radius if radius is None else radius,
            days=current.days if days is None else days,
        )
        if desired == current:
            return None

        self.session.prefs = desired
        self.preferences.save(desired)

        cached = self.cache.load()
        if cached is not None and self._cache_is_usable(cached, desired):
            if not self.session.latest_events:
                self.session.latest_events = cached.events
                self.session.last_source = "cache"
                self.session.last_fetched_at = cached.fetched_at
            logger.debug("Cache covers radius=%s days=%s", desired.radius, desired.days)
            return None

        logger.info(
            "Search window %s (radius=%s, days=%s); fetching",
            "expanded" if desired.expands(current) else "changed",
            desired.radius,
            desired.days,
        )
        return await self.discover(force_refresh=True)

    async def set_radius(self, radius: int | str) -> DiscoveryOutcome | None:
        return await self.update_prefs(radius=radius)

    async def set_days(self, days: int | str) -> DiscoveryOutcome | None:
        return await self.update_prefs(days=days)

    async def set_days_from_date(self, value: str) -> DiscoveryOutcome | None:
        """Day window from a ``YYYY-MM-DD`` pick; invalid input is ignored."""
        days = days_from_date_input(value)
        if days is None:
            return None
        return await self.update_prefs(days=days)

    # ------------------------------------------------------------------
    # Rendering and view state
    # ------------------------------------------------------------------

    def _visible_before_facets(self) -> list[Event]:
        session = self.session
        return apply_pipeline(
            session.latest_events,
            view=session.view,
            prefs=session.prefs,
            hidden_event_ids=self.library.hidden_event_ids,
            hidden_genres=self.library.hidden_genres,
            genre_selection=None,
            saved_events=self.library.saved_events() if session.view == "saved" else None,
            calendar_day=session.calendar_day,
            now=datetime.fromtimestamp(self.clock() / 1000).astimezone(),
        )

    def render(self) -> ShowsView:
        """Apply the pipeline to the current session state."""
        session = self.session
        visible = self._visible_before_facets()
        hidden_genres = sorted(self.library.hidden_genres)

        if session.view == "saved":
            events = visible
            counts: dict[str, int] = {}
            calendar = saved_calendar_months(visible)
        else:
            events = filter_by_genres(visible, session.genre_selection, hidden_genres)
            counts = genre_counts(visible, hidden_genres)
            calendar = []

        summary = events_summary_text(
            session.last_source, len(events), session.last_fetched_at, session.view
        )
        return ShowsView(
            view=session.view,
            events=events,
            status=session.status,
            summary=summary,
            genre_counts=counts,
            genre_selection=session.genre_selection,
            hidden_genres=hidden_genres,
            saved_calendar=calendar,
        )

    def switch_view(self, view: View) -> ShowsView:
        if view != self.session.view:
            self.session.view = view
            self.session.calendar_day = None
        return self.render()

    def select_calendar_day(self, day: CalendarDay | None) -> ShowsView:
        """Float a saved day to the top; selecting the same day again clears it."""
        self.session.calendar_day = None if day == self.session.calendar_day else day
        return self.render()

    def toggle_genre(self, genre: str, checked: bool) -> ShowsView:
        available = genre_counts(self._visible_before_facets(), self.library.hidden_genres)
        self.session.genre_selection = toggle_genre(
            self.session.genre_selection, genre, checked, available
        )
        return self.render()

    def select_all_genres(self) -> ShowsView:
        self.session.genre_selection = None
        return self.render()

    def select_no_genres(self) -> ShowsView:
        self.session.genre_selection = frozenset()
        return self.render()

    # ------------------------------------------------------------------
    # Saved and hidden state
    # ------------------------------------------------------------------

    def toggle_save(self, event: Event) -> bool:
        """Save or unsave; returns whether the event ends up saved."""
        return self.library.toggle_save(event)

    def hide_event(self, event: Event) -> ShowsView:
        self.library.hide_event(event)
        return self.render()

    def hide_genre(self, genre: str) -> ShowsView:
        self.library.hide_genre(genre)
        return self.render()

    def restore_genre(self, genre: str) -> ShowsView:
        self.library.restore_genre(genre)
        return self.render()
