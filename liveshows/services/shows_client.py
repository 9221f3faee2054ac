"""
HTTP client for the shows endpoint.

Issues ``GET {endpoint}?lat=&lon=&radius=&days=`` and normalizes the
``{events: [...]}`` body into Event models.
"""

import logging
from typing import Any

import httpx

from liveshows.errors import ShowsFetchError
from liveshows.models.cache import Coordinates
from liveshows.models.events import Event, normalize_events
from liveshows.models.preferences import clamp_days, clamp_radius
from liveshows.services.endpoint import append_query

logger = logging.getLogger(__name__)


class ShowsClient:
    """Async client for the shows endpoint."""

    def __init__(
        self,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def build_url(endpoint: str, location: Coordinates, radius: int, days: int) -> str:
        params = {
            "lat": str(location.latitude),
            "lon": str(location.longitude),
            "radius": str(clamp_radius(radius)),
            "days": str(clamp_days(days)),
        }
        return append_query(endpoint, params)

    async def fetch_events(
        self,
        endpoint: str,
        location: Coordinates,
        radius: int,
        days: int,
        token: str | None = None,
    ) -> list[Event]:
        """
        Fetch events around a location.

        Args:
            endpoint: Resolved shows endpoint
            location: Search center
            radius: Search radius in miles
            days: Day window from today
            token: Bearer token for remote endpoints

        Returns:
            Normalized events; an absent or non-list ``events`` key yields []

        Raises:
            ShowsFetchError: On non-2xx responses, transport errors, or a
                body that is not JSON
        """
        url = self.build_url(endpoint, location, radius, days)
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        client = await self._get_client()
        logger.info("Fetching shows: radius=%s, days=%s", clamp_radius(radius), clamp_days(days))

        try:
            response = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.error("Shows request failed: %s", e)
            raise ShowsFetchError(f"Unable to load live events: {e}") from e

        if not response.is_success:
            raise ShowsFetchError(
                f"Failed to fetch shows: {response.status_code} {response.text}",
                status_code=response.status_code,
            )

        try:
            data: Any = response.json()
        except ValueError as e:
            raise ShowsFetchError("Shows endpoint returned invalid JSON.") from e

        raw_events = data.get("events") if isinstance(data, dict) else None
        events = normalize_events(raw_events)
        logger.info("Shows endpoint returned %d events", len(events))
        return events
