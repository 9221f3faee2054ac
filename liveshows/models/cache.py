"""Cached discovery snapshot models."""

from pydantic import BaseModel, Field

from .events import Event


class Coordinates(BaseModel):
    """A position fix."""

    latitude: float
    longitude: float


class CacheSnapshot(BaseModel):
    """Result of one successful fetch, replaced wholesale on the next one."""

    events: list[Event] = Field(default_factory=list)
    fetched_at: float | None = Field(default=None, description="Epoch milliseconds")
    location: Coordinates | None = None
    radius_miles: float | None = None
    days: float | None = None
