"""Tests for the discovery CLI."""

import json
import sys
from datetime import date, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from liveshows.cli.discover import (
    build_location_provider,
    build_mirror,
    clear_cache,
    main,
    manage_hidden_genres,
    run_discover,
    show_prefs,
)
from liveshows.config import Settings
from liveshows.models.events import Event
from liveshows.services.event_cache import EventCache
from liveshows.services.storage import SQLiteStorage


@pytest.fixture
def storage_path(tmp_path, monkeypatch):
    """Point the CLI at a throwaway database."""
    path = tmp_path / "cli.db"
    monkeypatch.setenv("STORAGE_PATH", str(path))
    monkeypatch.setenv("CURRENT_ORIGIN", "http://localhost:3003")
    monkeypatch.setenv("API_BASE_URL", "http://localhost:3003")
    return path


def tomorrow_event(event_id, **extra) -> Event:
    when = datetime.now().astimezone() + timedelta(days=1)
    return Event.model_validate({"id": event_id, "start": {"utc": when.isoformat()}, **extra})


class TestBuilders:
    def test_location_from_arguments(self):
        provider = build_location_provider(Settings(), 1.0, 2.0)
        assert (provider.coordinates.latitude, provider.coordinates.longitude) == (1.0, 2.0)

    def test_location_from_settings(self):
        provider = build_location_provider(Settings(default_latitude=3, default_longitude=4))
        assert provider.coordinates.latitude == 3

    def test_no_location(self):
        assert build_location_provider(Settings()) is None
        assert build_location_provider(Settings(default_latitude=3)) is None

    def test_mirror_needs_user_and_database(self):
        assert build_mirror(Settings(user_id="u")) is None
        mirror = build_mirror(
            Settings(user_id="u", turso_database_url="libsql://x.turso.io", turso_auth_token="t")
        )
        assert mirror.user_id == "u"


class TestCommands:
    """Tests for the subcommand functions."""

    @pytest.mark.asyncio
    async def test_run_discover_json(self, storage_path, capsys):
        client = MagicMock()
        client.fetch_events = AsyncMock(
            return_value=[tomorrow_event("a", genres=["Rock"], name={"text": "Alpha"})]
        )
        client.close = AsyncMock()

        with patch("liveshows.discovery.orchestrator.ShowsClient", return_value=client):
            code = await run_discover(latitude=1.0, longitude=2.0, as_json=True)

        assert code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["view"] == "all"
        assert [event["id"] for event in output["events"]] == ["a"]
        assert output["genres"] == {"Rock": 1}
        assert [event.id for event in EventCache(SQLiteStorage(storage_path)).load().events] == [
            "a"
        ]

    @pytest.mark.asyncio
    async def test_run_discover_without_location_fails(self, storage_path, capsys):
        code = await run_discover()
        assert code == 1
        assert "Geolocation is not available." in capsys.readouterr().out

    def test_show_prefs(self, storage_path, capsys):
        assert show_prefs() == 0
        output = capsys.readouterr().out
        assert "radius: 100 mi" in output
        through = (date.today() + timedelta(days=30)).isoformat()
        assert f"days: 30 (through {through})" in output
        assert "Cache: empty" in output

    def test_clear_cache(self, storage_path):
        EventCache(SQLiteStorage(storage_path)).save([Event(id="x")])
        assert clear_cache() == 0
        assert EventCache(SQLiteStorage(storage_path)).load() is None

    def test_hidden_genres(self, storage_path, capsys):
        manage_hidden_genres(hide="Indie Rock")
        assert "indie rock" in capsys.readouterr().out
        manage_hidden_genres(restore="indie rock")
        assert "No hidden genres." in capsys.readouterr().out

    def test_main_without_command(self, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["liveshows"])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1
