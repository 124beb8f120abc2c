"""
Service container.

One engine per store key, built once at startup and passed to the UI layer
by reference:

    services = create_services()
    await services.hydrate()
    services.cart.add_or_increment(product)
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, Optional

from orderlines.config import StoreSettings
from orderlines.db import StoreKeys, create_backend
from orderlines.lines import CollectionEngine, LineEngine, LineStore, WishlistEngine
from orderlines.lines.writer import ErrorCallback
from orderlines.logging import get_logger

logger = get_logger(__name__)


@dataclass
class LineServices:
    """The cart, print queue and wishlist engines of one app session."""
    cart: LineEngine
    print_queue: LineEngine
    wishlist: WishlistEngine

    def engines(self) -> Dict[str, CollectionEngine]:
        """Engines keyed by store key."""
        return {
            self.cart.key: self.cart,
            self.print_queue.key: self.print_queue,
            self.wishlist.key: self.wishlist,
        }

    async def hydrate(self) -> None:
        await asyncio.gather(*(engine.hydrate() for engine in self.engines().values()))

    def clear_all(self) -> None:
        """Empty every collection, e.g. at logout."""
        for engine in self.engines().values():
            engine.clear()
        logger.info("All collections cleared")

    async def flush(self) -> None:
        await asyncio.gather(*(engine.flush() for engine in self.engines().values()))

    async def close(self) -> None:
        await asyncio.gather(*(engine.close() for engine in self.engines().values()))


def create_services(
    store: Optional[LineStore] = None,
    settings: Optional[StoreSettings] = None,
    on_persist_error: Optional[ErrorCallback] = None,
) -> LineServices:
    """
    Build the engines for one app session.

    Args:
        store: Store adapter shared by all engines; built from settings if omitted
        settings: Store settings; read from the environment if omitted
        on_persist_error: Called with the store key when a snapshot write fails
    """
    settings = settings or StoreSettings.from_env()
    if store is None:
        store = LineStore(create_backend(settings), id_field=settings.id_field)

    options = {"store": store, "id_field": store.id_field, "on_persist_error": on_persist_error}
    return LineServices(
        cart=LineEngine(StoreKeys.CART, **options),
        print_queue=LineEngine(StoreKeys.PRINT, **options),
        wishlist=WishlistEngine(StoreKeys.WISHLIST, **options),
    )
