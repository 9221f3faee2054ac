"""
Services for the live shows discovery core.

Each service owns one concern and reads or writes shared state only through
the key-value store or the remote document store it is given.

Wiring the services together::

    from liveshows.services import (
        InMemoryDocumentStore,
        RemoteMirror,
        SQLiteStorage,
        StaticLocationProvider,
    )
    from liveshows.discovery import ShowsDiscovery

    storage = SQLiteStorage("data/liveshows.db")
    mirror = RemoteMirror(InMemoryDocumentStore(), user_id="user-123")

    async with ShowsDiscovery(
        storage=storage,
        mirror=mirror,
        location_provider=StaticLocationProvider(39.96, -82.99),
    ) as discovery:
        view = await discovery.initialize()

Available Services
------------------
- resolve_shows_endpoint: Pick the shows endpoint from config and overrides
- EventCache, is_fresh, covers: Snapshot cache and its freshness/coverage rules
- apply_pipeline: Filter stages from fetched events to the visible list
- ShowsLibrary: Saved events, hidden events, hidden genres
- RemoteMirror: Queued best-effort writes of saved/hidden state
- TursoDocumentStore, InMemoryDocumentStore: Remote document backends
- ShowsClient: HTTP fetch of events
- PreferenceStore: Radius/day preferences
- InMemoryStorage, SQLiteStorage: Key-value backends
"""

from .endpoint import (
    EndpointOverrides,
    ResolvedEndpoint,
    is_remote_endpoint,
    resolve_from_settings,
    resolve_shows_endpoint,
)
from .event_cache import EventCache, covers, is_fresh, is_usable
from .filters import CalendarDay, apply_pipeline, genre_counts, get_event_genres
from .geolocation import LocationProvider, StaticLocationProvider, request_location
from .library import ShowsLibrary
from .preferences import PreferenceStore
from .remote_store import InMemoryDocumentStore, RemoteDocumentStore, TursoDocumentStore
from .remote_sync import RemoteMirror
from .shows_client import ShowsClient
from .storage import InMemoryStorage, KeyValueStore, SQLiteStorage

__all__ = [
    "EndpointOverrides",
    "ResolvedEndpoint",
    "is_remote_endpoint",
    "resolve_from_settings",
    "resolve_shows_endpoint",
    "EventCache",
    "covers",
    "is_fresh",
    "is_usable",
    "CalendarDay",
    "apply_pipeline",
    "genre_counts",
    "get_event_genres",
    "LocationProvider",
    "StaticLocationProvider",
    "request_location",
    "ShowsLibrary",
    "PreferenceStore",
    "InMemoryDocumentStore",
    "RemoteDocumentStore",
    "TursoDocumentStore",
    "RemoteMirror",
    "ShowsClient",
    "InMemoryStorage",
    "KeyValueStore",
    "SQLiteStorage",
]
