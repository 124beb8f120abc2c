"""Line-item collections: models, pure operations, storage, and engine facade."""
from .models import LineItem, Snapshot
from .service import CollectionEngine, LineEngine, WishlistEngine
from .storage import LineStore

__all__ = [
    "LineItem",
    "Snapshot",
    "CollectionEngine",
    "LineEngine",
    "WishlistEngine",
    "LineStore",
]
