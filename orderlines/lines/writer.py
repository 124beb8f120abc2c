"""
Write-behind persistence for one collection.

The engine hands every new snapshot to submit() and moves on. A single drain
task per key writes the newest pending snapshot; snapshots that arrive while
a write is in flight replace each other, so only the latest is written next.
Failed writes are counted and reported, never retried.
"""
import asyncio
from typing import Callable, Optional, Tuple

from orderlines.logging import get_logger, sanitize_id_for_logging

from .models import LineItem
from .storage import LineStore

logger = get_logger(__name__)

ErrorCallback = Callable[[str], None]


class SnapshotWriter:
    """Serialises full-snapshot writes for one store key."""

    def __init__(self, store: LineStore, key: str, on_error: Optional[ErrorCallback] = None):
        self.store = store
        self.key = key
        self.on_error = on_error
        self.failures = 0
        self._pending: Tuple[LineItem, ...] = ()
        self._dirty = False
        self._task: Optional[asyncio.Task] = None

    @property
    def has_pending(self) -> bool:
        return self._dirty

    def submit(self, items: Tuple[LineItem, ...]) -> None:
        """Queue a snapshot for writing. Does not block.

        Without a running event loop the snapshot stays pending until flush().
        """
        self._pending = items
        self._dirty = True

        if self._task is not None and not self._task.done():
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        # Keep the reference so the task isn't garbage collected mid-write
        self._task = loop.create_task(self._drain())

    async def _drain(self) -> None:
        while self._dirty:
            items = self._pending
            self._dirty = False
            if await self.store.save(self.key, items):
                continue

            self.failures += 1
            logger.warning(
                f"Snapshot for {sanitize_id_for_logging(self.key)} not persisted, "
                f"in-memory state stays authoritative"
            )
            if self.on_error is not None:
                try:
                    self.on_error(self.key)
                except Exception:
                    logger.exception("Persist error callback raised")

    async def flush(self) -> None:
        """Wait until every submitted snapshot has been written or has failed."""
        while True:
            if self._task is not None and not self._task.done():
                await self._task
            elif self._dirty:
                self._task = asyncio.get_running_loop().create_task(self._drain())
            else:
                return
