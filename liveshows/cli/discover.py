#!/usr/bin/env python3
"""
CLI for discovering nearby shows and managing local shows state.

Usage:
    # Show events near a position (cache first, network when needed)
    python -m liveshows.cli.discover discover --lat 39.96 --lon -82.99

    # Force a fetch with a wider window
    python -m liveshows.cli.discover discover --radius 150 --days 60 --refresh

    # Saved events as JSON
    python -m liveshows.cli.discover discover --view saved --json

    # Inspect or reset local state
    python -m liveshows.cli.discover prefs
    python -m liveshows.cli.discover cache-clear
    python -m liveshows.cli.discover hidden-genres --restore "indie rock"
"""

import argparse
import asyncio
import json
import logging
import sys

from dotenv import load_dotenv

from liveshows.config import Settings, configure_logging, get_settings
from liveshows.discovery import ShowsDiscovery, ShowsView
from liveshows.discovery.status import discovery_status_text, empty_state_text
from liveshows.models.events import get_start_timestamp
from liveshows.services.event_cache import EventCache
from liveshows.services.geolocation import LocationProvider, StaticLocationProvider
from liveshows.services.library import ShowsLibrary
from liveshows.services.preferences import PreferenceStore, date_input_from_days
from liveshows.services.remote_store import TursoDocumentStore
from liveshows.services.remote_sync import RemoteMirror
from liveshows.services.storage import SQLiteStorage

logger = logging.getLogger(__name__)


def build_mirror(settings: Settings) -> RemoteMirror | None:
    """Remote mirror for the configured user, if Turso is configured."""
    if not settings.has_remote_mirror:
        return None
    store = TursoDocumentStore(
        url=settings.turso_database_url,
        auth_token=settings.turso_auth_token,
    )
    return RemoteMirror(store, settings.user_id)


def build_location_provider(
    settings: Settings,
    latitude: float | None = None,
    longitude: float | None = None,
) -> LocationProvider | None:
    if latitude is not None and longitude is not None:
        return StaticLocationProvider(latitude, longitude)
    if settings.default_latitude is not None and settings.default_longitude is not None:
        return StaticLocationProvider(settings.default_latitude, settings.default_longitude)
    return None


def view_to_dict(view: ShowsView) -> dict:
    """Convert a ShowsView to a JSON-serializable dict."""
    return {
        "view": view.view,
        "status": {"message": view.status.message, "tone": view.status.tone},
        "summary": view.summary,
        "events": [event.to_payload() for event in view.events],
        "genres": view.genre_counts,
        "hiddenGenres": view.hidden_genres,
    }


def print_view(view: ShowsView) -> None:
    if view.status.message:
        print(view.status.message)
    if view.summary:
        print(view.summary)
    if not view.events:
        if view.status.tone != "error":
            print(empty_state_text(view.view))
        return
    for event in view.events:
        parts = [event.title]
        if event.start and (event.start.local or event.start.utc):
            parts.append(event.start.local or event.start.utc or "")
        if event.venue and event.venue.name:
            parts.append(event.venue.name)
        if event.distance is not None:
            parts.append(f"{event.distance:.1f} mi")
        print("  - " + " | ".join(parts))
    if view.genre_counts:
        genres = ", ".join(f"{genre} ({count})" for genre, count in view.genre_counts.items())
        print(f"Genres: {genres}")


async def run_discover(
    radius: int | None = None,
    days: int | None = None,
    refresh: bool = False,
    view: str = "all",
    latitude: float | None = None,
    longitude: float | None = None,
    as_json: bool = False,
) -> int:
    """Initialize the panel, apply any preference change, and print the result."""
    settings = get_settings()
    storage = SQLiteStorage(settings.storage_path)
    discovery = ShowsDiscovery(
        storage=storage,
        location_provider=build_location_provider(settings, latitude, longitude),
        mirror=build_mirror(settings),
        settings=settings,
    )

    async with discovery:
        await discovery.initialize(view="saved" if view == "saved" else "all")
        if radius is not None or days is not None:
            await discovery.update_prefs(radius=radius, days=days)
        if refresh:
            await discovery.refresh()
        result = discovery.render()

    prefs = discovery.session.prefs
    if as_json:
        print(json.dumps(view_to_dict(result), indent=2))
    else:
        print(discovery_status_text(prefs.radius, prefs.days))
        print_view(result)

    return 1 if result.status.tone == "error" else 0


def show_prefs() -> int:
    settings = get_settings()
    storage = SQLiteStorage(settings.storage_path)
    prefs = PreferenceStore(storage).load()
    snapshot = EventCache(storage, ttl_ms=settings.cache_ttl_ms).load()

    print("Search preferences:")
    print(f"  radius: {prefs.radius} mi")
    print(f"  days: {prefs.days} (through {date_input_from_days(prefs.days)})")
    if snapshot is None:
        print("Cache: empty")
    else:
        dated = [e for e in snapshot.events if get_start_timestamp(e) is not None]
        print("Cache:")
        print(f"  events: {len(snapshot.events)} ({len(dated)} dated)")
        print(f"  radius: {snapshot.radius_miles} mi, days: {snapshot.days}")
    return 0


def clear_cache() -> int:
    settings = get_settings()
    cleared = EventCache(SQLiteStorage(settings.storage_path)).clear()
    logger.info("Cleared shows cache: %s", cleared)
    return 0 if cleared else 1


def manage_hidden_genres(hide: str | None = None, restore: str | None = None) -> int:
    settings = get_settings()
    library = ShowsLibrary(SQLiteStorage(settings.storage_path))
    library.load()
    if hide:
        library.hide_genre(hide)
    if restore and not library.restore_genre(restore):
        logger.warning("Genre is not hidden: %s", restore)
    if library.hidden_genres:
        print("Hidden genres:")
        for genre in sorted(library.hidden_genres):
            print(f"  {genre}")
    else:
        print("No hidden genres.")
    return 0


def main() -> None:
    """Main CLI entrypoint."""
    load_dotenv()
    configure_logging()

    parser = argparse.ArgumentParser(
        description="Live shows discovery CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # discover command
    discover = subparsers.add_parser(
        "discover",
        help="Show nearby events, fetching when the cache cannot serve them",
    )
    discover.add_argument("--radius", type=int, help="Search radius in miles (5-150)")
    discover.add_argument("--days", type=int, help="Days ahead to include (0-60)")
    discover.add_argument(
        "--refresh",
        action="store_true",
        help="Fetch from the network even if the cache is fresh",
    )
    discover.add_argument(
        "--view",
        choices=["all", "saved"],
        default="all",
        help="Which list to show (default: all)",
    )
    discover.add_argument("--lat", type=float, help="Latitude of the search center")
    discover.add_argument("--lon", type=float, help="Longitude of the search center")
    discover.add_argument("--json", action="store_true", help="Print JSON output")

    # prefs command
    subparsers.add_parser("prefs", help="Show stored search preferences and cache info")

    # cache-clear command
    subparsers.add_parser("cache-clear", help="Clear the cached events snapshot")

    # hidden-genres command
    hidden = subparsers.add_parser("hidden-genres", help="List, hide, or restore genres")
    hidden.add_argument("--hide", help="Genre to hide")
    hidden.add_argument("--restore", help="Genre to restore")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "discover":
        code = asyncio.run(
            run_discover(
                radius=args.radius,
                days=args.days,
                refresh=args.refresh,
                view=args.view,
                latitude=args.lat,
                longitude=args.lon,
                as_json=args.json,
            )
        )
    elif args.command == "prefs":
        code = show_prefs()
    elif args.command == "cache-clear":
        code = clear_cache()
    else:
        code = manage_hidden_genres(hide=args.hide, restore=args.restore)

    sys.exit(code)


if __name__ == "__main__":
    main()
