"""
Geolocation contract and a bounded one-shot position request.

Providers raise LocationPermissionDenied when the user refused access and
LocationUnavailable for any other failure.
"""

import asyncio
import logging
from typing import Protocol

from liveshows.errors import LocationPermissionDenied, LocationUnavailable
from liveshows.models.cache import Coordinates

logger = logging.getLogger(__name__)

DEFAULT_GEOLOCATION_TIMEOUT = 10.0


class LocationProvider(Protocol):
    async def locate(self) -> Coordinates: ...


class StaticLocationProvider:
    """Returns a fixed position, e.g. from configuration."""

    def __init__(self, latitude: float, longitude: float):
        self.coordinates = Coordinates(latitude=latitude, longitude=longitude)

    async def locate(self) -> Coordinates:
        return self.coordinates


async def request_location(
    provider: LocationProvider | None,
    timeout: float = DEFAULT_GEOLOCATION_TIMEOUT,
) -> Coordinates:
    """Ask ``provider`` for one position fix, waiting at most ``timeout`` seconds.

    Raises:
        LocationPermissionDenied: The user refused location access
        LocationUnavailable: No provider, a timeout, or any other failure
    """
    if provider is None:
        raise LocationUnavailable("Geolocation is not available.")
    try:
        return await asyncio.wait_for(provider.locate(), timeout=timeout)
    except LocationUnavailable:
        raise
    except TimeoutError as e:
        logger.warning("Geolocation timed out after %.1fs", timeout)
        raise LocationUnavailable() from e
    except PermissionError as e:
        raise LocationPermissionDenied() from e
    except Exception as e:
        logger.warning("Geolocation failed: %s", e)
        raise LocationUnavailable() from e
