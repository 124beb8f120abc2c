"""Local order-line collections for the point-of-sale client."""
from orderlines.lines import LineEngine, LineItem, LineStore, Snapshot, WishlistEngine
from orderlines.services import LineServices, create_services

__version__ = "1.0.0"

__all__ = [
    "LineEngine",
    "LineItem",
    "LineServices",
    "LineStore",
    "Snapshot",
    "WishlistEngine",
    "create_services",
]
