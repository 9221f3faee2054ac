"""
Remote per-user document holding saved events and hidden event ids.

The core only needs two operations: read the document once at startup and
merge-write it after local mutations. ``TursoDocumentStore`` keeps one JSON
document per user in a Turso/libsql table; ``InMemoryDocumentStore`` is the
fallback when no database is configured.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Protocol

import libsql_client

from liveshows.errors import RemoteSyncFailure

if TYPE_CHECKING:
    from libsql_client import Client

logger = logging.getLogger(__name__)


class RemoteDocumentStore(Protocol):
    """Read/merge-write access to one JSON document per user."""

    async def get(self, user_id: str) -> dict[str, Any] | None: ...

    async def merge(self, user_id: str, data: dict[str, Any]) -> None: ...


class InMemoryDocumentStore:
    """
    In-memory document store for non-persisted mode.

    Data is lost when the process restarts.
    """

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Any]] = {}

    async def get(self, user_id: str) -> dict[str, Any] | None:
        document = self._documents.get(user_id)
        return json.loads(json.dumps(document)) if document is not None else None

    async def merge(self, user_id: str, data: dict[str, Any]) -> None:
        document = self._documents.setdefault(user_id, {})
        document.update(json.loads(json.dumps(data)))

    def clear(self) -> None:
        self._documents.clear()


class TursoDocumentStore:
    """
    Turso/libsql implementation of the remote document store.

    Usage:
        store = TursoDocumentStore(
            url="libsql://your-db.turso.io",
            auth_token="your-token",
        )
        await store.merge("user-123", {"hiddenEventIds": ["abc"]})
        document = await store.get("user-123")
        await store.close()
    """

    def __init__(self, url: str, auth_token: str):
        """
        Initialize the store.

        Args:
            url: Turso database URL (libsql://your-db.turso.io)
            auth_token: Turso authentication token
        """
        self._url = url
        self._auth_token = auth_token
        self._client: Client | None = None
        self._schema_initialized = False

    async def _get_client(self) -> Client:
        """
        Get or create the libsql client.

        Lazily initializes the client and ensures schema exists.
        """
        if self._client is None:
            self._client = libsql_client.create_client(
                url=self._url,
                auth_token=self._auth_token,
            )
        if not self._schema_initialized:
            await self._ensure_schema()
            self._schema_initialized = True
        return self._client

    async def _ensure_schema(self) -> None:
        """Create the documents table if it doesn't exist."""
        if self._client is None:
            return

        await self._client.batch(
            [
                """CREATE TABLE IF NOT EXISTS show_preferences (
                    user_id TEXT PRIMARY KEY,
                    document TEXT NOT NULL DEFAULT '{}',
                    updated_at TEXT DEFAULT (datetime('now'))
                )""",
            ]
        )

    async def get(self, user_id: str) -> dict[str, Any] | None:
        """
        Read a user's document.

        Returns:
            The decoded document, or None if the user has none
        """
        try:
            client = await self._get_client()
            result = await client.execute(
                "SELECT document FROM show_preferences WHERE user_id = ?",
                [user_id],
            )
        except Exception as e:
            raise RemoteSyncFailure(f"Unable to read document for {user_id}: {e}") from e

        if not result.rows:
            return None

        try:
            document = json.loads(result.rows[0]["document"])
        except json.JSONDecodeError:
            logger.warning("Failed to decode shows document for user %s", user_id)
            return None
        return document if isinstance(document, dict) else None

    async def merge(self, user_id: str, data: dict[str, Any]) -> None:
        """
        Merge top-level keys of ``data`` into the user's document.

        Keys not present in ``data`` are kept.
        """
        try:
            client = await self._get_client()
            await client.execute(
                """INSERT INTO show_preferences (user_id, document, updated_at)
                   VALUES (?, ?, datetime('now'))
                   ON CONFLICT(user_id) DO UPDATE SET
                       document = json_patch(show_preferences.document, excluded.document),
                       updated_at = excluded.updated_at""",
                [user_id, json.dumps(data)],
            )
        except Exception as e:
            raise RemoteSyncFailure(f"Unable to write document for {user_id}: {e}") from e

    async def close(self) -> None:
        """Close the database connection."""
        if self._client:
            await self._client.close()
            self._client = None
            self._schema_initialized = False
