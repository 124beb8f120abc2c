"""Aggregation engines: the mutation API that UI code calls."""
import asyncio
import copy
from functools import partial
from typing import Any, Callable, List, Mapping, Optional

from orderlines.config import DEFAULT_ID_FIELD
from orderlines.db import StoreKeys
from orderlines.errors import ERROR_LISTENER_FAILED, ERROR_MISSING_PRODUCT_ID
from orderlines.logging import get_logger, sanitize_id_for_logging
from orderlines.models import normalize_product_id

from . import collection
from .collection import Lines
from .models import Snapshot
from .storage import LineStore
from .writer import ErrorCallback, SnapshotWriter

logger = get_logger(__name__)

Listener = Callable[[Snapshot], None]
Operation = Callable[[Lines], Lines]


class CollectionEngine:
    """
    Owns one collection and its store key.

    Every mutation is synchronous: it computes the new tuple from the latest
    in-memory state, hands it to the write-behind writer, then notifies
    listeners. Callers see the new snapshot as soon as the method returns,
    before the store write completes.

    Mutations made before hydrate() finishes are kept in memory, not
    written, and replayed on top of the stored collection once it is loaded.
    """

    def __init__(
        self,
        key: str,
        store: Optional[LineStore] = None,
        id_field: str = DEFAULT_ID_FIELD,
        on_persist_error: Optional[ErrorCallback] = None,
    ):
        self.key = key
        self.store = store if store is not None else LineStore(id_field=id_field)
        self.id_field = id_field
        self._items: Lines = ()
        self._snapshot = Snapshot(key=key)
        self._listeners: List[Listener] = []
        self._hydrated = False
        self._hydration: Optional[asyncio.Task] = None
        self._replay: List[Operation] = []
        self._writer = SnapshotWriter(self.store, key, on_error=on_persist_error)

    @property
    def snapshot(self) -> Snapshot:
        """Current state. No I/O."""
        return self._snapshot

    @property
    def hydrated(self) -> bool:
        return self._hydrated

    @property
    def persist_failures(self) -> int:
        return self._writer.failures

    async def hydrate(self) -> Snapshot:
        """Load the collection from the store. Later calls return the current snapshot."""
        if self._hydration is None or self._hydration.cancelled():
            self._hydration = asyncio.ensure_future(self._load())
        # A cancelled caller must not cancel the load shared with other callers
        await asyncio.shield(self._hydration)
        return self._snapshot

    async def _load(self) -> None:
        items = await self.store.load(self.key)

        replay, self._replay = self._replay, []
        for op in replay:
            items = op(items)
        self._hydrated = True

        if replay:
            self._writer.submit(items)
        if items != self._items:
            self._publish(items)

        logger.info(f"Hydrated {sanitize_id_for_logging(self.key)}: {len(items)} lines, {len(replay)} replayed")

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called with each new snapshot.

        Returns:
            Function that removes the listener (safe to call twice)
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def remove(self, product_id: Any) -> Snapshot:
        """Drop a product. Removing an absent product is a no-op."""
        return self._apply(partial(collection.remove, product_id=product_id))

    def clear(self) -> Snapshot:
        """Empty the collection (logout, after checkout or printing)."""
        return self._apply(collection.clear)

    async def flush(self) -> None:
        """Wait for pending store writes."""
        await self._writer.flush()

    async def close(self) -> None:
        await self.flush()
        self._listeners.clear()

    def _identify(self, product: Any) -> Optional[str]:
        if not isinstance(product, Mapping):
            return None
        return normalize_product_id(product.get(self.id_field))

    def _reject(self, product: Any) -> Snapshot:
        raw = product.get(self.id_field) if isinstance(product, Mapping) else None
        logger.warning(
            f"{ERROR_MISSING_PRODUCT_ID} ({self.id_field}={sanitize_id_for_logging(repr(raw))}), "
            f"{sanitize_id_for_logging(self.key)} unchanged"
        )
        return self._snapshot

    def _apply(self, op: Operation) -> Snapshot:
        if not self._hydrated:
            # The item may only exist in the stored collection, so no-ops replay too
            self._replay.append(op)

        items = op(self._items)
        if items == self._items:
            return self._snapshot

        if self._hydrated:
            self._writer.submit(items)
        self._publish(items)
        return self._snapshot

    def _publish(self, items: Lines) -> None:
        self._items = items
        self._snapshot = Snapshot(key=self.key, items=items, version=self._snapshot.version + 1)
        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception:
                logger.exception(f"{ERROR_LISTENER_FAILED} ({sanitize_id_for_logging(self.key)})")


class LineEngine(CollectionEngine):
    """Quantity-tracked collection: the cart and the print queue."""

    def add_or_increment(self, product: Mapping[str, Any]) -> Snapshot:
        """
        Add a product with quantity 1, or bump its quantity if already present.

        The product mapping is stored as the line's payload on first insertion.
        Products without a usable identifier are rejected (no-op).
        """
        product_id = self._identify(product)
        if product_id is None:
            return self._reject(product)

        payload = copy.deepcopy(dict(product))
        return self._apply(partial(collection.upsert_increment, product_id=product_id, payload=payload))

    def increase_quantity(self, product_id: Any) -> Snapshot:
        return self._apply(partial(collection.increment, product_id=product_id))

    def decrease_quantity(self, product_id: Any) -> Snapshot:
        """Drop quantity by one; the line is removed when it would reach zero."""
        return self._apply(partial(collection.decrement, product_id=product_id))


class WishlistEngine(CollectionEngine):
    """Presence-only collection: a product is saved once, quantity stays 1."""

    def __init__(self, key: str = StoreKeys.WISHLIST, **kwargs):
        super().__init__(key, **kwargs)

    def add(self, product: Mapping[str, Any]) -> Snapshot:
        product_id = self._identify(product)
        if product_id is None:
            return self._reject(product)

        payload = copy.deepcopy(dict(product))
        return self._apply(partial(collection.upsert_once, product_id=product_id, payload=payload))

    def contains(self, product_id: Any) -> bool:
        return product_id in self._snapshot
