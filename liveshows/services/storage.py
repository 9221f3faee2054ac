"""
Key-value storage used for preferences, cached events, and saved/hidden state.

Values are JSON strings under fixed keys. Adapters raise PersistenceFailure;
callers go through ``load_json``/``store_json`` which log and recover so a
broken store never takes the discovery flow down.
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Protocol

from liveshows.errors import ConfigurationDegraded, PersistenceFailure

logger = logging.getLogger(__name__)

SHOWS_CACHE_KEY = "shows.cachedEvents"
SHOWS_HIDDEN_GENRES_KEY = "shows.hiddenGenres"
SHOWS_SAVED_EVENTS_KEY = "shows.savedEvents"
SHOWS_HIDDEN_EVENTS_KEY = "shows.hiddenEventIds"
SHOWS_SEARCH_PREFS_KEY = "shows.searchPrefs"


class KeyValueStore(Protocol):
    """String-keyed, string-valued storage."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class InMemoryStorage:
    """
    In-memory key-value store.

    Data is lost when the process restarts. Used in tests and when no
    storage path is configured.
    """

    def __init__(self, initial: dict[str, str] | None = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


class SQLiteStorage:
    """SQLite-backed key-value store.

    Each write replaces the whole value for its key in one statement.
    """

    def __init__(self, db_path: str | Path):
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = Path(db_path)
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TEXT DEFAULT (datetime('now'))
                    )
                """)
                conn.commit()
        except (OSError, sqlite3.Error) as e:
            raise PersistenceFailure(f"Unable to open storage at {self.db_path}: {e}") from e

    def get_item(self, key: str) -> str | None:
        try:
            with sqlite3.connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Unable to read {key}: {e}") from e
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, datetime('now'))
                    """,
                    (key, value),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Unable to write {key}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                conn.commit()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Unable to delete {key}: {e}") from e


def decode_json(raw: str, what: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError as e:
        raise ConfigurationDegraded(f"Malformed {what}: {e}") from e


def load_json(storage: KeyValueStore | None, key: str, what: str) -> Any | None:
    """Read and decode a JSON value, returning None when absent or unreadable."""
    if storage is None:
        return None
    try:
        raw = storage.get_item(key)
        if not raw:
            return None
        return decode_json(raw, what)
    except (PersistenceFailure, ConfigurationDegraded) as e:
        logger.warning("Unable to read %s: %s", what, e)
        return None


def store_json(storage: KeyValueStore | None, key: str, value: Any, what: str) -> bool:
    """Encode and write a JSON value. Returns False if the write failed."""
    if storage is None:
        return False
    try:
        storage.set_item(key, json.dumps(value))
        return True
    except (PersistenceFailure, TypeError, ValueError) as e:
        logger.warning("Unable to store %s: %s", what, e)
        return False


def remove_key(storage: KeyValueStore | None, key: str, what: str) -> bool:
    if storage is None:
        return False
    try:
        storage.remove_item(key)
        return True
    except PersistenceFailure as e:
        logger.warning("Unable to clear %s: %s", what, e)
        return False
