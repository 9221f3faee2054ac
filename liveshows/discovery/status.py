"""User-facing status lines for the shows panel."""

from datetime import date, datetime, timedelta

from liveshows.models.preferences import clamp_days, clamp_radius


def _plural(count: int) -> str:
    return "" if count == 1 else "s"


def format_timestamp(timestamp_ms: float | None) -> str | None:
    """Medium date plus short time in local time, e.g. ``Oct 17, 2026, 8:05 PM``."""
    if timestamp_ms is None:
        return None
    try:
        local = datetime.fromtimestamp(timestamp_ms / 1000)
    except (OverflowError, OSError, ValueError):
        return None
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{local:%b} {local.day}, {local.year}, {hour}:{local:%M} {meridiem}"


def format_search_end_date(days: int, today: date | None = None) -> str:
    end = (today or date.today()) + timedelta(days=clamp_days(days))
    return f"{end:%b} {end.day}, {end.year}"


def discovery_status_text(radius: int, days: int, today: date | None = None) -> str:
    """``Distance: 100 mi • Through Nov 16, 2026``."""
    parts = [f"Distance: {clamp_radius(radius)} mi"]
    end_label = format_search_end_date(days, today)
    if end_label:
        parts.append(f"Through {end_label}")
    return " • ".join(parts)


def describe_cached_status(count: int, fetched_at: float | None) -> str:
    base = f"Showing {count} cached event{_plural(count)}."
    formatted = format_timestamp(fetched_at)
    return f"{base} Last updated {formatted}." if formatted else base


def events_summary_text(
    source: str,
    count: int,
    fetched_at: float | None = None,
    view: str = "all",
) -> str:
    """Summary line above the event list."""
    if view == "saved":
        return f"Showing {count} saved event{_plural(count)}."
    if source == "cache":
        return describe_cached_status(count, fetched_at)
    if count > 0:
        return f"Showing {count} upcoming event{_plural(count)}."
    return ""


def empty_state_text(view: str) -> str:
    if view == "saved":
        return "You have not saved any shows yet. Tap Save on an event to save it here."
    return "No upcoming shows were returned for the selected location."
