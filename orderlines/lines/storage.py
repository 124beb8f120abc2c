"""Durable store adapter: typed load/save of a collection under one key."""
import json
from typing import Any, Iterable, Mapping, Optional, Tuple

from pydantic import ValidationError

from orderlines.config import DEFAULT_ID_FIELD
from orderlines.db import KeyValueBackend, MemoryBackend
from orderlines.errors import ERROR_STORE_CORRUPT, ERROR_STORE_READ, ERROR_STORE_WRITE
from orderlines.logging import get_logger, sanitize_id_for_logging
from orderlines.models import LegacyLine, StoredLine, normalize_product_id

from .collection import merge_duplicates
from .models import LineItem

logger = get_logger(__name__)


class CorruptCollection(ValueError):
    """Stored value can't be decoded into line items."""


def _decode_row(row: Any, id_field: str) -> LineItem:
    if not isinstance(row, Mapping):
        raise CorruptCollection(f"row is {type(row).__name__}, expected object")

    if "quantity" in row:
        stored = StoredLine.model_validate(row)
        return LineItem.from_dict(stored.model_dump())

    legacy = LegacyLine.model_validate(row)
    fields = legacy.product_fields()
    key = normalize_product_id(fields.get(id_field))
    if key is None:
        raise CorruptCollection(f"row has no usable {id_field!r}")
    return LineItem(product_id=key, quantity=legacy.qty, payload=fields)


def decode_lines(raw: str, id_field: str = DEFAULT_ID_FIELD) -> Tuple[LineItem, ...]:
    """
    Parse a stored JSON array into line items.

    Accepts current rows and legacy flat rows ({...product, "qty": n}).
    Repeated ids are merged.

    Raises:
        CorruptCollection: on invalid JSON, a non-array value or any bad row
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise CorruptCollection(str(e)) from e

    if not isinstance(data, list):
        raise CorruptCollection(f"value is {type(data).__name__}, expected array")

    try:
        items = [_decode_row(row, id_field) for row in data]
    except CorruptCollection:
        raise
    except (ValidationError, ValueError) as e:
        raise CorruptCollection(str(e)) from e

    return merge_duplicates(items)


def encode_lines(items: Iterable[LineItem]) -> str:
    return json.dumps([item.to_dict() for item in items], ensure_ascii=False)


class LineStore:
    """
    Loads and saves whole collections through a key-value backend.

    Neither method raises for storage problems: load falls back to an empty
    collection and save reports failure through its return value.
    """

    def __init__(self, backend: Optional[KeyValueBackend] = None, id_field: str = DEFAULT_ID_FIELD):
        self.backend = backend if backend is not None else MemoryBackend()
        self.id_field = id_field

    async def load(self, key: str) -> Tuple[LineItem, ...]:
        """Read the collection stored under key; empty if missing or unreadable."""
        safe_key = sanitize_id_for_logging(key)
        try:
            raw = await self.backend.get(key)
        except Exception as e:
            logger.warning(f"{ERROR_STORE_READ} ({safe_key}): {e}", exc_info=True)
            return ()

        if not raw:
            return ()

        try:
            items = decode_lines(raw, self.id_field)
        except CorruptCollection as e:
            logger.warning(f"{ERROR_STORE_CORRUPT} ({safe_key}): {e}")
            return ()

        logger.debug(f"Loaded {len(items)} lines from {safe_key}")
        return items

    async def save(self, key: str, items: Iterable[LineItem]) -> bool:
        """Overwrite the collection stored under key. Returns False on failure."""
        try:
            await self.backend.set(key, encode_lines(items))
            return True
        except Exception as e:
            logger.warning(f"{ERROR_STORE_WRITE} ({sanitize_id_for_logging(key)}): {e}", exc_info=True)
            return False
