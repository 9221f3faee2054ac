"""Tests for shows endpoint resolution."""

from liveshows.config import DEFAULT_SHOWS_ENDPOINT, Settings
from liveshows.services.endpoint import (
    EndpointOverrides,
    append_query,
    build_shows_endpoint_from_base,
    is_remote_endpoint,
    resolve_from_settings,
    resolve_shows_endpoint,
    url_origin,
)

LOCAL_ORIGIN = "http://localhost:3003"
SITE_ORIGIN = "https://shows.example.com"
FUNCTIONS_BASE = "https://us-central1-demo.cloudfunctions.net"


class TestRuntimeOverride:
    """Explicit endpoint overrides win over everything else."""

    def test_override_used_verbatim_without_trailing_slash(self):
        """Override is used as-is, minus one trailing slash."""
        result = resolve_shows_endpoint(
            "http://ignored.example.com",
            EndpointOverrides(shows_endpoint="https://api.example.com/custom/"),
            LOCAL_ORIGIN,
        )
        assert result.endpoint == "https://api.example.com/custom"
        assert result.is_remote is True

    def test_same_origin_override_is_local(self):
        """Override on the current origin is not remote."""
        result = resolve_shows_endpoint(
            "",
            EndpointOverrides(shows_endpoint=f"{LOCAL_ORIGIN}/api/shows"),
            LOCAL_ORIGIN,
        )
        assert result.endpoint == f"{LOCAL_ORIGIN}/api/shows"
        assert result.is_remote is False

    def test_relative_override_is_local(self):
        """Relative override paths stay on the current origin."""
        result = resolve_shows_endpoint(
            "", EndpointOverrides(shows_endpoint="/api/shows"), LOCAL_ORIGIN
        )
        assert result.endpoint == "/api/shows"
        assert result.is_remote is False

    def test_blank_override_is_ignored(self):
        """Whitespace-only override falls through to base resolution."""
        result = resolve_shows_endpoint(
            "https://api.example.com/api",
            EndpointOverrides(shows_endpoint="   "),
            LOCAL_ORIGIN,
        )
        assert result.endpoint == "https://api.example.com/api/shows"

    def test_cloudfunctions_override_is_remote(self):
        """Known function host is remote even without an origin."""
        result = resolve_shows_endpoint(
            "", EndpointOverrides(shows_endpoint=f"{FUNCTIONS_BASE}/showsProxy"), None
        )
        assert result.is_remote is True


class TestBaseResolution:
    """Tests for resolution from the configured base URL."""

    def test_local_dev_server_with_port(self):
        """Same-origin base on an explicit port derives /api/shows locally."""
        result = resolve_shows_endpoint(LOCAL_ORIGIN, None, LOCAL_ORIGIN)
        assert result.endpoint == "http://localhost:3003/api/shows"
        assert result.endpoint.endswith("/api/shows")
        assert result.is_remote is False

    def test_local_dev_server_strips_api_suffix(self):
        """An existing /api suffix is not doubled."""
        result = resolve_shows_endpoint(f"{LOCAL_ORIGIN}/api/", None, LOCAL_ORIGIN)
        assert result.endpoint == "http://localhost:3003/api/shows"
        assert "/api/api/" not in result.endpoint

    def test_same_origin_without_port_uses_default_remote(self):
        """Same-origin base without a port and no override goes remote."""
        result = resolve_shows_endpoint(SITE_ORIGIN, None, SITE_ORIGIN)
        assert result.endpoint == DEFAULT_SHOWS_ENDPOINT
        assert result.is_remote is True

    def test_same_origin_with_api_base_override_is_trusted(self):
        """An explicit API-base override keeps a same-origin base."""
        result = resolve_shows_endpoint(
            f"{SITE_ORIGIN}/api",
            EndpointOverrides(api_base_url=f"{SITE_ORIGIN}/api"),
            SITE_ORIGIN,
        )
        assert result.endpoint == f"{SITE_ORIGIN}/api/shows"
        assert result.is_remote is False

    def test_blank_base_uses_default_remote(self):
        """A blank base falls back to the default endpoint."""
        result = resolve_shows_endpoint("  ", None, LOCAL_ORIGIN)
        assert result.endpoint == DEFAULT_SHOWS_ENDPOINT
        assert result.is_remote is True

    def test_custom_default_endpoint(self):
        """The fallback endpoint is configurable."""
        result = resolve_shows_endpoint(
            None, None, LOCAL_ORIGIN, default_endpoint="https://proxy.example.com/shows"
        )
        assert result.endpoint == "https://proxy.example.com/shows"

    def test_base_already_pointing_at_shows(self):
        """Bases ending in /api/shows or /showsProxy are used as-is."""
        shows = resolve_shows_endpoint("https://api.example.com/api/shows", None, LOCAL_ORIGIN)
        proxy = resolve_shows_endpoint(f"{FUNCTIONS_BASE}/showsProxy", None, LOCAL_ORIGIN)
        assert shows.endpoint == "https://api.example.com/api/shows"
        assert shows.is_remote is True
        assert proxy.endpoint == f"{FUNCTIONS_BASE}/showsProxy"
        assert proxy.is_remote is True

    def test_base_ending_in_api(self):
        """A base ending in /api gets /shows appended."""
        result = resolve_shows_endpoint("https://api.example.com/api", None, LOCAL_ORIGIN)
        assert result.endpoint == "https://api.example.com/api/shows"

    def test_cloudfunctions_base(self):
        """A serverless function host gets /showsProxy and is remote."""
        result = resolve_shows_endpoint(FUNCTIONS_BASE, None, LOCAL_ORIGIN)
        assert result.endpoint == f"{FUNCTIONS_BASE}/showsProxy"
        assert result.endpoint.endswith("/showsProxy")
        assert result.is_remote is True

    def test_generic_base(self):
        """Any other base gets /api/shows appended."""
        result = resolve_shows_endpoint("https://backend.example.com/", None, LOCAL_ORIGIN)
        assert result.endpoint == "https://backend.example.com/api/shows"
        assert result.is_remote is True

    def test_relative_base_without_origin(self):
        """Relative base with no origin resolves to a relative endpoint."""
        result = resolve_shows_endpoint("/backend", None, None)
        assert result.endpoint == "/backend/api/shows"
        assert result.is_remote is False

    def test_malformed_base_does_not_raise(self):
        """Unparseable URLs degrade to a remote endpoint."""
        result = resolve_shows_endpoint("http://bad host:99999", None, LOCAL_ORIGIN)
        assert result.is_remote is True

    def test_resolution_is_pure(self):
        """Repeated calls with the same inputs give the same result."""
        overrides = EndpointOverrides(api_base_url="x")
        first = resolve_shows_endpoint(FUNCTIONS_BASE, overrides, LOCAL_ORIGIN)
        second = resolve_shows_endpoint(FUNCTIONS_BASE, overrides, LOCAL_ORIGIN)
        assert first == second


class TestHelpers:
    """Tests for origin and URL helpers."""

    def test_url_origin_drops_default_port(self):
        assert url_origin("https://example.com:443/path") == "https://example.com"
        assert url_origin("http://Example.com:8080/x") == "http://example.com:8080"

    def test_url_origin_relative_needs_base(self):
        assert url_origin("/api") is None
        assert url_origin("/api", LOCAL_ORIGIN) == LOCAL_ORIGIN

    def test_url_origin_bad_port(self):
        assert url_origin("http://example.com:notaport") is None

    def test_is_remote_without_origin(self):
        """Absolute URLs count as remote when the origin is unknown."""
        assert is_remote_endpoint("https://api.example.com/api/shows") is True
        assert is_remote_endpoint("/api/shows") is False
        assert is_remote_endpoint("") is False

    def test_build_from_base(self):
        assert build_shows_endpoint_from_base("https://x.io/API") == "https://x.io/api/shows"
        assert build_shows_endpoint_from_base("") == ""

    def test_append_query(self):
        assert append_query("https://x.io/shows", {"lat": "1.5"}) == "https://x.io/shows?lat=1.5"
        assert append_query("https://x.io/shows?key=a", {"days": "3"}) == (
            "https://x.io/shows?key=a&days=3"
        )
        assert append_query("https://x.io/shows", None) == "https://x.io/shows"


class TestResolveFromSettings:
    """Tests for settings-driven resolution."""

    def test_uses_settings_fields(self):
        settings = Settings(
            api_base_url=LOCAL_ORIGIN,
            current_origin=LOCAL_ORIGIN,
        )
        result = resolve_from_settings(settings)
        assert result.endpoint == f"{LOCAL_ORIGIN}/api/shows"
        assert result.is_remote is False

    def test_override_setting(self):
        settings = Settings(
            api_base_url=LOCAL_ORIGIN,
            current_origin=LOCAL_ORIGIN,
            shows_endpoint_override="https://proxy.example.com/shows/",
        )
        result = resolve_from_settings(settings)
        assert result.endpoint == "https://proxy.example.com/shows"
        assert result.is_remote is True

    def test_shows_endpoint_env_var(self, monkeypatch):
        """SHOWS_ENDPOINT replaces the default remote endpoint."""
        monkeypatch.setenv("SHOWS_ENDPOINT", "https://env.example.com/shows")
        result = resolve_from_settings(Settings(current_origin=LOCAL_ORIGIN))
        assert result.endpoint == "https://env.example.com/shows"
        assert result.is_remote is True
