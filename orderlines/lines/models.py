"""Line item and snapshot models."""
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Tuple

from orderlines.errors import ERROR_INVALID_QUANTITY, ERROR_MISSING_PRODUCT_ID
from orderlines.models import normalize_product_id


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({str(k): _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    if isinstance(value, frozenset):
        return [_thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class LineItem:
    """One product's entry in a collection."""
    product_id: str
    quantity: int = 1
    payload: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        key = normalize_product_id(self.product_id)
        if key is None:
            raise ValueError(ERROR_MISSING_PRODUCT_ID)
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity < 1:
            raise ValueError(ERROR_INVALID_QUANTITY)
        object.__setattr__(self, "product_id", key)
        # Copy-on-insert: later changes to the caller's dict don't leak in
        object.__setattr__(self, "payload", _freeze(self.payload or {}))

    def with_quantity(self, quantity: int) -> "LineItem":
        return replace(self, quantity=quantity)

    def to_dict(self) -> dict:
        """Convert to the stored row shape."""
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "payload": _thaw(self.payload),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LineItem":
        return cls(
            product_id=data["product_id"],
            quantity=int(data.get("quantity", 1)),
            payload=data.get("payload") or {},
        )


@dataclass(frozen=True)
class Snapshot:
    """Immutable point-in-time copy of a collection."""
    key: str
    items: Tuple[LineItem, ...] = ()
    version: int = 0

    def __iter__(self) -> Iterator[LineItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, product_id: object) -> bool:
        return self.get(product_id) is not None

    def get(self, product_id: Any) -> Optional[LineItem]:
        key = normalize_product_id(product_id)
        if key is None:
            return None
        return next((item for item in self.items if item.product_id == key), None)

    def quantity_of(self, product_id: Any) -> int:
        """Quantity of a product, 0 if it isn't in the collection."""
        item = self.get(product_id)
        return item.quantity if item else 0

    @property
    def total_quantity(self) -> int:
        """Total number of units across all lines."""
        return sum(item.quantity for item in self.items)

    @property
    def product_ids(self) -> Tuple[str, ...]:
        return tuple(item.product_id for item in self.items)

    def to_list(self) -> list:
        """Plain dicts for checkout and print consumers."""
        return [item.to_dict() for item in self.items]

    def summary(self) -> dict:
        """Summary for list screens and badges."""
        if not self.items:
            return {
                "key": self.key,
                "is_empty": True,
                "lines": 0,
                "total_quantity": 0,
                "items": [],
            }

        return {
            "key": self.key,
            "is_empty": False,
            "lines": len(self.items),
            "total_quantity": self.total_quantity,
            "items": [
                {
                    "product_id": item.product_id,
                    "name": item.payload.get("name"),
                    "quantity": item.quantity,
                }
                for item in self.items
            ],
        }
