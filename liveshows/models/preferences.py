"""Search preference model and clamping rules."""

import math
import re
from typing import Any

from pydantic import BaseModel, field_validator

DEFAULT_RADIUS_MILES = 100
MIN_RADIUS_MILES = 5
MAX_RADIUS_MILES = 150
DEFAULT_LOOKAHEAD_DAYS = 30
MIN_LOOKAHEAD_DAYS = 0
MAX_LOOKAHEAD_DAYS = 60

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_int(value: Any) -> int | None:
    """Leading-integer parse: ``"42mi"`` -> 42, ``12.9`` -> 12, junk -> None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return int(match.group(1)) if match else None
    return None


def clamp_radius(value: Any) -> int:
    num = parse_int(value)
    if num is None:
        return DEFAULT_RADIUS_MILES
    return min(max(num, MIN_RADIUS_MILES), MAX_RADIUS_MILES)


def clamp_days(value: Any) -> int:
    num = parse_int(value)
    if num is None:
        return DEFAULT_LOOKAHEAD_DAYS
    return min(max(num, MIN_LOOKAHEAD_DAYS), MAX_LOOKAHEAD_DAYS)


class SearchPrefs(BaseModel):
    """Radius/day window for discovery. Values are clamped on construction."""

    radius: int = DEFAULT_RADIUS_MILES
    days: int = DEFAULT_LOOKAHEAD_DAYS

    @field_validator("radius", mode="before")
    @classmethod
    def _clamp_radius(cls, value: Any) -> int:
        return clamp_radius(value)

    @field_validator("days", mode="before")
    @classmethod
    def _clamp_days(cls, value: Any) -> int:
        return clamp_days(value)

    def expands(self, other: "SearchPrefs") -> bool:
        """True if this window is wider than ``other`` on either axis."""
        return self.radius > other.radius or self.days > other.days
