"""
Tests for the wishlist engine
"""

import json

import pytest

from orderlines.lines import WishlistEngine


@pytest.fixture
def wishlist(store):
    return WishlistEngine(store=store)


@pytest.mark.asyncio
async def test_add_once(wishlist, sample_product):
    await wishlist.hydrate()

    wishlist.add(sample_product)
    wishlist.add(sample_product)

    assert [(item.product_id, item.quantity) for item in wishlist.snapshot] == [("P1", 1)]
    assert wishlist.contains("P1")


@pytest.mark.asyncio
async def test_remove_and_contains(wishlist):
    await wishlist.hydrate()
    wishlist.add({"product_id": "W1"})

    wishlist.remove("W1")
    wishlist.remove("W1")

    assert not wishlist.contains("W1")
    assert len(wishlist.snapshot) == 0


@pytest.mark.asyncio
async def test_rejects_missing_id(wishlist):
    await wishlist.hydrate()

    wishlist.add({"name": "No id"})

    assert len(wishlist.snapshot) == 0


@pytest.mark.asyncio
async def test_persisted_under_wishlist_key(backend, wishlist):
    await wishlist.hydrate()

    wishlist.add({"product_id": "W1", "name": "Kettle"})
    await wishlist.close()

    rows = json.loads(backend.data["wishlist"])
    assert rows == [{"product_id": "W1", "quantity": 1, "payload": {"product_id": "W1", "name": "Kettle"}}]
