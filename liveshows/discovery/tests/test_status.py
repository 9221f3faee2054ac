"""Tests for status and summary text."""

from datetime import date, datetime

from liveshows.discovery.status import (
    describe_cached_status,
    discovery_status_text,
    empty_state_text,
    events_summary_text,
    format_search_end_date,
    format_timestamp,
)

TODAY = date(2026, 10, 17)


def test_format_timestamp():
    """Medium date plus short time, in local time."""
    moment = datetime(2026, 10, 17, 20, 5).astimezone()
    assert format_timestamp(moment.timestamp() * 1000) == "Oct 17, 2026, 8:05 PM"
    midnight = datetime(2026, 1, 2, 0, 30).astimezone()
    assert format_timestamp(midnight.timestamp() * 1000) == "Jan 2, 2026, 12:30 AM"
    assert format_timestamp(None) is None


def test_search_end_date():
    assert format_search_end_date(30, TODAY) == "Nov 16, 2026"
    assert format_search_end_date(0, TODAY) == "Oct 17, 2026"
    assert format_search_end_date(500, TODAY) == "Dec 16, 2026"


def test_discovery_status_text():
    assert discovery_status_text(100, 30, TODAY) == "Distance: 100 mi • Through Nov 16, 2026"
    assert discovery_status_text(1, 5, TODAY) == "Distance: 5 mi • Through Oct 22, 2026"


class TestSummaries:
    """Tests for the line above the event list."""

    def test_cached(self):
        fetched = datetime(2026, 10, 17, 9, 0).astimezone().timestamp() * 1000
        assert events_summary_text("cache", 3, fetched) == (
            "Showing 3 cached events. Last updated Oct 17, 2026, 9:00 AM."
        )

    def test_cached_without_timestamp(self):
        assert describe_cached_status(1, None) == "Showing 1 cached event."

    def test_remote(self):
        assert events_summary_text("remote", 1) == "Showing 1 upcoming event."
        assert events_summary_text("remote", 0) == ""

    def test_saved(self):
        assert events_summary_text("remote", 2, view="saved") == "Showing 2 saved events."

    def test_empty_states(self):
        assert empty_state_text("saved").startswith("You have not saved any shows yet.")
        assert empty_state_text("all") == "No upcoming shows were returned for the selected location."
