"""
Best-effort mirroring of saved/hidden state to the remote document store.

Mutations hand the full document to ``RemoteMirror.submit`` and return
immediately. A single worker task drains the queue and writes to the store;
write failures are logged and counted, never raised back to the caller. When
several documents are submitted before the worker catches up, only the newest
is written.
"""

import asyncio
import contextlib
import logging
from typing import Any

from liveshows.services.remote_store import RemoteDocumentStore

logger = logging.getLogger(__name__)


class RemoteMirror:
    """Queues remote document writes for one user."""

    def __init__(self, store: RemoteDocumentStore | None, user_id: str | None) -> None:
        self.store = store
        self.user_id = user_id or ""
        self._queue: asyncio.Queue[None] = asyncio.Queue()
        self._pending: dict[str, Any] | None = None
        self._worker: asyncio.Task[None] | None = None
        self.writes = 0
        self.failures = 0

    @property
    def enabled(self) -> bool:
        return self.store is not None and bool(self.user_id)

    def submit(self, document: dict[str, Any]) -> bool:
        """Schedule ``document`` for writing. Returns False when disabled."""
        if not self.enabled:
            return False
        superseded = self._pending is not None
        self._pending = document
        if not superseded:
            self._queue.put_nowait(None)
        else:
            logger.debug("Superseding queued shows document for user %s", self.user_id)
        return True

    async def start(self) -> None:
        """Start the worker task if it is not running."""
        if not self.enabled:
            return
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run())

    async def _run(self) -> None:
        while True:
            await self._queue.get()
            try:
                document, self._pending = self._pending, None
                if document is not None:
                    await self._write(document)
            finally:
                self._queue.task_done()

    async def _write(self, document: dict[str, Any]) -> None:
        if self.store is None:
            return
        try:
            await self.store.merge(self.user_id, document)
            self.writes += 1
            logger.debug("Mirrored shows state for user %s", self.user_id)
        except Exception as e:
            self.failures += 1
            logger.warning("Unable to persist shows state remotely: %s", e)

    async def load(self) -> dict[str, Any] | None:
        """Read the user's document once. Failures yield None."""
        if not self.enabled or self.store is None:
            return None
        try:
            return await self.store.get(self.user_id)
        except Exception as e:
            logger.warning("Unable to sync shows state from remote: %s", e)
            return None

    async def flush(self) -> None:
        """Wait until every submitted document has been handled."""
        if not self.enabled:
            return
        await self.start()
        await self._queue.join()

    async def close(self) -> None:
        """Flush outstanding writes and stop the worker."""
        await self.flush()
        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None
