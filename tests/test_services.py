"""
Tests for the service container
"""

import json
from unittest.mock import Mock

import pytest

from orderlines.config import StoreSettings
from orderlines.db import FileBackend, MemoryBackend
from orderlines.lines import LineEngine, LineStore, WishlistEngine
from orderlines.services import create_services


def test_create_services_builds_one_engine_per_key(store):
    services = create_services(store=store)

    assert isinstance(services.cart, LineEngine)
    assert isinstance(services.print_queue, LineEngine)
    assert isinstance(services.wishlist, WishlistEngine)
    assert list(services.engines()) == ["cart", "print", "wishlist"]
    assert all(engine.store is store for engine in services.engines().values())


def test_create_services_from_settings():
    services = create_services(settings=StoreSettings(backend="memory", id_field="_id"))

    assert isinstance(services.cart.store.backend, MemoryBackend)
    assert services.cart.id_field == "_id"
    assert services.print_queue.store is services.cart.store


@pytest.mark.asyncio
async def test_hydrate_all(backend, store):
    backend.data["cart"] = json.dumps([{"product_id": "P1", "quantity": 2, "payload": {}}])
    backend.data["print"] = json.dumps([{"product_id": "L1", "name": "Label", "qty": 5}])
    services = create_services(store=store)

    await services.hydrate()

    assert services.cart.snapshot.quantity_of("P1") == 2
    assert services.print_queue.snapshot.quantity_of("L1") == 5
    assert len(services.wishlist.snapshot) == 0
    assert all(engine.hydrated for engine in services.engines().values())


@pytest.mark.asyncio
async def test_clear_all_at_logout(backend, store):
    services = create_services(store=store)
    await services.hydrate()
    services.cart.add_or_increment({"product_id": "P1"})
    services.print_queue.add_or_increment({"product_id": "P1"})
    services.wishlist.add({"product_id": "P1"})
    await services.flush()

    services.clear_all()
    await services.close()

    for key in ("cart", "print", "wishlist"):
        assert json.loads(backend.data[key]) == []
        assert len(services.engines()[key].snapshot) == 0


@pytest.mark.asyncio
async def test_persist_error_callback_is_shared(backend, store):
    on_error = Mock()
    services = create_services(store=store, on_persist_error=on_error)
    await services.hydrate()
    backend.fail_writes = True

    services.cart.add_or_increment({"product_id": "P1"})
    services.print_queue.add_or_increment({"product_id": "P1"})
    await services.flush()

    assert sorted(call.args[0] for call in on_error.call_args_list) == ["cart", "print"]


@pytest.mark.asyncio
async def test_file_store_survives_restart(tmp_path):
    settings = StoreSettings(backend="file", data_dir=str(tmp_path))
    first = create_services(settings=settings)
    await first.hydrate()
    first.cart.add_or_increment({"product_id": "P1", "name": "Rice"})
    first.cart.add_or_increment({"product_id": "P1", "name": "Rice"})
    first.print_queue.add_or_increment({"product_id": "L9"})
    await first.close()

    second = create_services(settings=settings)
    await second.hydrate()

    assert isinstance(second.cart.store.backend, FileBackend)
    assert second.cart.snapshot.items == first.cart.snapshot.items
    assert second.print_queue.snapshot.product_ids == ("L9",)


@pytest.mark.asyncio
async def test_engines_share_store_not_state():
    store = LineStore(MemoryBackend())
    services = create_services(store=store)
    await services.hydrate()

    services.cart.add_or_increment({"product_id": "P1"})

    assert len(services.print_queue.snapshot) == 0
