"""
Line-item collection operations.

Pure functions over an ordered tuple of LineItem. None of them mutate their
input; each returns a tuple (the same one when nothing changed). Items are
matched by canonical product id, see normalize_product_id.
"""
from typing import Any, Iterable, Mapping, Optional, Tuple

from orderlines.models import normalize_product_id

from .models import LineItem

Lines = Tuple[LineItem, ...]


def find_index(items: Lines, product_id: Any) -> Optional[int]:
    """Position of the product in the collection, or None."""
    key = normalize_product_id(product_id)
    if key is None:
        return None
    for index, item in enumerate(items):
        if item.product_id == key:
            return index
    return None


def _replace_at(items: Lines, index: int, item: LineItem) -> Lines:
    return items[:index] + (item,) + items[index + 1:]


def upsert_increment(items: Lines, product_id: Any, payload: Mapping[str, Any]) -> Lines:
    """Bump quantity of an existing line, or append a new line with quantity 1.

    The payload of an existing line is left as first inserted.
    """
    key = normalize_product_id(product_id)
    if key is None:
        return items
    index = find_index(items, key)
    if index is None:
        return items + (LineItem(product_id=key, quantity=1, payload=payload),)
    current = items[index]
    return _replace_at(items, index, current.with_quantity(current.quantity + 1))


def upsert_once(items: Lines, product_id: Any, payload: Mapping[str, Any]) -> Lines:
    """Append a line with quantity 1 unless the product is already present."""
    key = normalize_product_id(product_id)
    if key is None or find_index(items, key) is not None:
        return items
    return items + (LineItem(product_id=key, quantity=1, payload=payload),)


def increment(items: Lines, product_id: Any) -> Lines:
    index = find_index(items, product_id)
    if index is None:
        return items
    current = items[index]
    return _replace_at(items, index, current.with_quantity(current.quantity + 1))


def decrement(items: Lines, product_id: Any) -> Lines:
    """Drop quantity by one; a line at quantity 1 is removed instead."""
    index = find_index(items, product_id)
    if index is None:
        return items
    current = items[index]
    if current.quantity > 1:
        return _replace_at(items, index, current.with_quantity(current.quantity - 1))
    return items[:index] + items[index + 1:]


def remove(items: Lines, product_id: Any) -> Lines:
    index = find_index(items, product_id)
    if index is None:
        return items
    return items[:index] + items[index + 1:]


def clear(items: Lines) -> Lines:
    return ()


def merge_duplicates(items: Iterable[LineItem]) -> Lines:
    """Collapse repeated product ids into one line.

    Quantities are summed; the first occurrence keeps its position and payload.
    """
    merged: list = []
    positions: dict = {}
    for item in items:
        index = positions.get(item.product_id)
        if index is None:
            positions[item.product_id] = len(merged)
            merged.append(item)
        else:
            existing = merged[index]
            merged[index] = existing.with_quantity(existing.quantity + item.quantity)
    return tuple(merged)
