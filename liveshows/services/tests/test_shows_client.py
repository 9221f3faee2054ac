"""Tests for the shows endpoint client and geolocation."""

import asyncio
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from liveshows.errors import LocationPermissionDenied, LocationUnavailable, ShowsFetchError
from liveshows.models.cache import Coordinates
from liveshows.services.geolocation import StaticLocationProvider, request_location
from liveshows.services.shows_client import ShowsClient

COLUMBUS = Coordinates(latitude=39.96, longitude=-82.99)
ENDPOINT = "https://shows.example.com/api/shows"


def client_for(handler) -> ShowsClient:
    return ShowsClient(http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestBuildUrl:
    def test_query_parameters(self):
        url = ShowsClient.build_url(ENDPOINT, COLUMBUS, radius=500, days=-2)
        query = parse_qs(urlsplit(url).query)
        assert query == {"lat": ["39.96"], "lon": ["-82.99"], "radius": ["150"], "days": ["0"]}

    def test_existing_query_is_kept(self):
        url = ShowsClient.build_url(f"{ENDPOINT}?key=abc", COLUMBUS, 50, 7)
        assert url.startswith(f"{ENDPOINT}?key=abc&lat=")


class TestFetchEvents:
    """Tests for ShowsClient.fetch_events."""

    @pytest.mark.asyncio
    async def test_returns_normalized_events(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(
                200,
                json={"events": [{"id": 7, "name": {"text": "Show"}}, "junk"]},
            )

        client = client_for(handler)
        events = await client.fetch_events(ENDPOINT, COLUMBUS, 100, 30, token="secret")

        assert [event.id for event in events] == ["7"]
        request = seen["request"]
        assert request.headers["Authorization"] == "Bearer secret"
        assert request.url.params["radius"] == "100"
        assert request.url.params["days"] == "30"

    @pytest.mark.asyncio
    async def test_no_token_no_auth_header(self):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            return httpx.Response(200, json={"events": []})

        await client_for(handler).fetch_events(ENDPOINT, COLUMBUS, 100, 30)
        assert "Authorization" not in seen["headers"]

    @pytest.mark.asyncio
    async def test_missing_events_key(self):
        client = client_for(lambda request: httpx.Response(200, json={"count": 0}))
        assert await client.fetch_events(ENDPOINT, COLUMBUS, 100, 30) == []

    @pytest.mark.asyncio
    async def test_non_list_events(self):
        client = client_for(lambda request: httpx.Response(200, json={"events": {"a": 1}}))
        assert await client.fetch_events(ENDPOINT, COLUMBUS, 100, 30) == []

    @pytest.mark.asyncio
    async def test_error_status(self):
        client = client_for(lambda request: httpx.Response(503, text="upstream down"))
        with pytest.raises(ShowsFetchError) as exc_info:
            await client.fetch_events(ENDPOINT, COLUMBUS, 100, 30)
        assert exc_info.value.status_code == 503
        assert str(exc_info.value) == "Failed to fetch shows: 503 upstream down"

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ShowsFetchError) as exc_info:
            await client_for(handler).fetch_events(ENDPOINT, COLUMBUS, 100, 30)
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        client = client_for(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(ShowsFetchError):
            await client.fetch_events(ENDPOINT, COLUMBUS, 100, 30)

    @pytest.mark.asyncio
    async def test_close_leaves_injected_client_open(self):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        client = ShowsClient(http_client=http_client)
        await client.close()
        assert http_client.is_closed is False
        await http_client.aclose()


class FailingProvider:
    def __init__(self, error: Exception):
        self.error = error

    async def locate(self) -> Coordinates:
        raise self.error


class HangingProvider:
    async def locate(self) -> Coordinates:
        await asyncio.sleep(10)
        return COLUMBUS


class TestRequestLocation:
    """Tests for the bounded position request."""

    @pytest.mark.asyncio
    async def test_static_provider(self):
        assert await request_location(StaticLocationProvider(1.5, 2.5)) == Coordinates(
            latitude=1.5, longitude=2.5
        )

    @pytest.mark.asyncio
    async def test_no_provider(self):
        with pytest.raises(LocationUnavailable, match="not available"):
            await request_location(None)

    @pytest.mark.asyncio
    async def test_timeout(self):
        with pytest.raises(LocationUnavailable) as exc_info:
            await request_location(HangingProvider(), timeout=0.01)
        assert not isinstance(exc_info.value, LocationPermissionDenied)

    @pytest.mark.asyncio
    async def test_permission_denied(self):
        with pytest.raises(LocationPermissionDenied) as exc_info:
            await request_location(FailingProvider(PermissionError("no")))
        assert "denied" in exc_info.value.user_message

    @pytest.mark.asyncio
    async def test_other_failure(self):
        with pytest.raises(LocationUnavailable) as exc_info:
            await request_location(FailingProvider(RuntimeError("gps off")))
        assert exc_info.value.user_message == "Unable to determine your location."
