"""
Resolution of the shows endpoint from configuration and runtime overrides.

The resolver is a pure function of its inputs. It never raises: URLs that
cannot be parsed are treated as remote.
"""

import logging
import re
from dataclasses import dataclass
from urllib.parse import urlencode, urljoin, urlsplit

from liveshows.config import DEFAULT_SHOWS_ENDPOINT, Settings

logger = logging.getLogger(__name__)

# Hosts that only ever serve the shows proxy as a serverless function
REMOTE_FUNCTION_HOST = re.compile(r"cloudfunctions\.net", re.IGNORECASE)
ABSOLUTE_HTTP_URL = re.compile(r"^https?://", re.IGNORECASE)
API_SUFFIX = re.compile(r"/api$", re.IGNORECASE)

DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class EndpointOverrides:
    """Runtime signals that take precedence over the configured base URL."""

    shows_endpoint: str | None = None
    """Explicit endpoint, used verbatim when non-blank."""

    api_base_url: str | None = None
    """Explicit API base; when set, a same-origin base is trusted as-is."""


@dataclass(frozen=True)
class ResolvedEndpoint:
    endpoint: str
    is_remote: bool


def _strip_trailing_slash(value: str) -> str:
    return value[:-1] if value.endswith("/") else value


def _split_origin(url: str, base: str | None = None) -> tuple[str, str, int | None] | None:
    """(scheme, host, explicit port) for ``url`` resolved against ``base``."""
    try:
        joined = urljoin(f"{base}/", url) if base else url
        parts = urlsplit(joined)
        port = parts.port
    except ValueError:
        return None
    scheme = parts.scheme.lower()
    if scheme not in DEFAULT_PORTS or not parts.hostname:
        return None
    if port == DEFAULT_PORTS[scheme]:
        port = None
    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"
    return scheme, host, port


def url_origin(url: str, base: str | None = None) -> str | None:
    """Origin (``scheme://host[:port]``) of a URL, or None if unresolvable."""
    split = _split_origin(url, base)
    if split is None:
        return None
    scheme, host, port = split
    return f"{scheme}://{host}" if port is None else f"{scheme}://{host}:{port}"


def has_explicit_port(origin: str) -> bool:
    split = _split_origin(origin)
    return split is not None and split[2] is not None


def is_remote_endpoint(endpoint: str, current_origin: str | None = None) -> bool:
    """Whether a request to ``endpoint`` leaves the current origin."""
    if not endpoint:
        return False
    if REMOTE_FUNCTION_HOST.search(endpoint):
        return True
    if ABSOLUTE_HTTP_URL.match(endpoint):
        location_origin = url_origin(current_origin) if current_origin else None
        if not location_origin:
            return True
        resolved = url_origin(endpoint, location_origin)
        if resolved is None:
            logger.debug("Unable to resolve shows endpoint URL: %s", endpoint)
            return True
        return resolved != location_origin
    # Relative paths stay on the current origin
    return False


def build_shows_endpoint_from_base(base: str) -> str:
    """``{base}/api/shows``, without doubling an existing ``/api`` suffix."""
    trimmed = _strip_trailing_slash((base or "").strip())
    if not trimmed:
        return ""
    return f"{API_SUFFIX.sub('', trimmed)}/api/shows"


def resolve_shows_endpoint(
    base_url: str | None,
    overrides: EndpointOverrides | None = None,
    current_origin: str | None = None,
    default_endpoint: str = DEFAULT_SHOWS_ENDPOINT,
) -> ResolvedEndpoint:
    """Decide which endpoint to query for shows.

    Args:
        base_url: Configured API base URL (may be blank or relative)
        overrides: Runtime endpoint / API-base overrides
        current_origin: Origin the client runs on
        default_endpoint: Remote endpoint used when the base is unusable

    Returns:
        ResolvedEndpoint with the endpoint and whether it is cross-origin
    """
    overrides = overrides or EndpointOverrides()

    override = (overrides.shows_endpoint or "").strip()
    if override:
        trimmed_override = _strip_trailing_slash(override)
        return ResolvedEndpoint(
            trimmed_override, is_remote_endpoint(trimmed_override, current_origin)
        )

    location_origin = url_origin((current_origin or "").strip()) or ""
    has_api_base_override = bool((overrides.api_base_url or "").strip())

    trimmed_base = _strip_trailing_slash((base_url or "").strip())
    base_origin = url_origin(trimmed_base, location_origin or None) if trimmed_base else None

    matches_origin = bool(location_origin) and base_origin == location_origin

    # Same-origin dev server on an explicit port serves the API itself
    if (
        matches_origin
        and trimmed_base
        and has_explicit_port(location_origin)
        and not has_api_base_override
    ):
        endpoint = build_shows_endpoint_from_base(trimmed_base)
        return ResolvedEndpoint(endpoint, is_remote_endpoint(endpoint, current_origin))

    if not trimmed_base or (matches_origin and not has_api_base_override):
        return ResolvedEndpoint(default_endpoint, True)

    if trimmed_base.endswith("/api/shows") or trimmed_base.endswith("/showsProxy"):
        return ResolvedEndpoint(trimmed_base, is_remote_endpoint(trimmed_base, current_origin))

    if trimmed_base.endswith("/api"):
        endpoint = f"{trimmed_base}/shows"
        return ResolvedEndpoint(endpoint, is_remote_endpoint(endpoint, current_origin))

    if REMOTE_FUNCTION_HOST.search(trimmed_base):
        return ResolvedEndpoint(f"{trimmed_base}/showsProxy", True)

    endpoint = build_shows_endpoint_from_base(trimmed_base)
    return ResolvedEndpoint(endpoint, is_remote_endpoint(endpoint, current_origin))


def resolve_from_settings(settings: Settings) -> ResolvedEndpoint:
    """Resolve using the endpoint-related fields of ``Settings``."""
    overrides = EndpointOverrides(
        shows_endpoint=settings.shows_endpoint_override,
        api_base_url=settings.api_base_url_override,
    )
    base_url = settings.api_base_url_override or settings.api_base_url
    return resolve_shows_endpoint(
        base_url,
        overrides,
        settings.current_origin,
        default_endpoint=settings.default_shows_endpoint,
    )


def append_query(endpoint: str, params: dict[str, str] | None) -> str:
    """Append query parameters, respecting an existing query string."""
    if not params:
        return endpoint
    joiner = "&" if "?" in endpoint else "?"
    return f"{endpoint}{joiner}{urlencode(params)}"
