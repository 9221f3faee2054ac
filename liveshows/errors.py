"""Error taxonomy for the discovery core.

Only location and network failures are meant to reach the user. Storage and
remote mirror failures are raised by adapters and recovered by the core.
"""


class ShowsError(Exception):
    """Base class for discovery core errors."""

    default_message = "Unable to load live events."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def user_message(self) -> str:
        """Message suitable for the status line."""
        return str(self) or self.default_message


class ConfigurationDegraded(ShowsError):
    """Raised when stored JSON or a configured URL is malformed."""

    default_message = "Stored configuration is malformed."


class LocationUnavailable(ShowsError):
    """Raised when no position can be obtained."""

    default_message = "Unable to determine your location."


class LocationPermissionDenied(LocationUnavailable):
    """Raised when the user refused to share their position."""

    default_message = "Location access was denied. Enable location sharing and try again."


class ShowsFetchError(ShowsError):
    """Raised on non-2xx responses and transport errors."""

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PersistenceFailure(ShowsError):
    """Raised by key-value storage adapters on read/write errors."""

    default_message = "Unable to access local storage."


class RemoteSyncFailure(ShowsError):
    """Raised by remote document stores on read/write errors."""

    default_message = "Unable to sync with the remote document."
