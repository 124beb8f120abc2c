"""
Store configuration read from the environment.

Variables:
- ORDERLINES_STORE: memory | file | redis (default: file)
- ORDERLINES_DATA_DIR: directory for the file backend
- ORDERLINES_KEY_PREFIX: key prefix for the Redis backend
- ORDERLINES_TTL: Redis TTL in seconds, unset for no expiry
- ORDERLINES_ID_FIELD: product field holding the identifier
- UPSTASH_REDIS_REST_URL / UPSTASH_REDIS_REST_TOKEN: Redis credentials
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

BACKEND_MEMORY = "memory"
BACKEND_FILE = "file"
BACKEND_REDIS = "redis"
VALID_BACKENDS = frozenset({BACKEND_MEMORY, BACKEND_FILE, BACKEND_REDIS})

DEFAULT_DATA_DIR = ".orderlines"
DEFAULT_KEY_PREFIX = "lines:"
DEFAULT_ID_FIELD = "product_id"


def _parse_ttl(raw: Optional[str]) -> Optional[int]:
    if not raw:
        return None
    try:
        ttl = int(raw)
    except ValueError:
        return None
    return ttl if ttl > 0 else None


@dataclass(frozen=True)
class StoreSettings:
    """Where and how collections are persisted."""
    backend: str = BACKEND_FILE
    data_dir: str = DEFAULT_DATA_DIR
    key_prefix: str = DEFAULT_KEY_PREFIX
    ttl: Optional[int] = None
    id_field: str = DEFAULT_ID_FIELD
    redis_url: str = ""
    redis_token: str = ""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StoreSettings":
        """Build settings from environment variables (os.environ by default)."""
        env = os.environ if environ is None else environ
        return cls(
            backend=env.get("ORDERLINES_STORE", BACKEND_FILE).strip().lower() or BACKEND_FILE,
            data_dir=env.get("ORDERLINES_DATA_DIR", DEFAULT_DATA_DIR),
            key_prefix=env.get("ORDERLINES_KEY_PREFIX", DEFAULT_KEY_PREFIX),
            ttl=_parse_ttl(env.get("ORDERLINES_TTL")),
            id_field=env.get("ORDERLINES_ID_FIELD", DEFAULT_ID_FIELD) or DEFAULT_ID_FIELD,
            redis_url=env.get("UPSTASH_REDIS_REST_URL", ""),
            redis_token=env.get("UPSTASH_REDIS_REST_TOKEN", ""),
        )
