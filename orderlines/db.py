"""
Storage Backends - Key-Value Clients for Collection Snapshots

Provides:
- MemoryBackend: in-process dict, for tests and throwaway sessions
- FileBackend: one JSON document per key on local disk
- RedisBackend: Upstash Redis (REST) for shared terminals
- get_redis(): async Upstash Redis client (singleton)
- create_backend(): pick a backend from StoreSettings
"""

import asyncio
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol

from upstash_redis.asyncio import Redis as AsyncRedis

from orderlines.config import (
    BACKEND_FILE,
    BACKEND_MEMORY,
    BACKEND_REDIS,
    StoreSettings,
)
from orderlines.errors import ERROR_REDIS_CREDENTIALS, ERROR_STORE_BACKEND, ERROR_STORE_KEY

_redis_client: Optional[AsyncRedis] = None

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.:-]+$")


class StoreKeys:
    """Store keys, one per collection."""

    CART = "cart"
    PRINT = "print"
    WISHLIST = "wishlist"

    ALL = (CART, PRINT, WISHLIST)


class KeyValueBackend(Protocol):
    """Raw string storage under a key."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...


def get_redis(settings: Optional[StoreSettings] = None) -> AsyncRedis:
    """
    Get async Upstash Redis client (singleton).

    Credentials come from UPSTASH_REDIS_REST_URL / UPSTASH_REDIS_REST_TOKEN
    unless explicit settings are passed on the first call.
    """
    global _redis_client

    if _redis_client is None:
        settings = settings or StoreSettings.from_env()
        if not settings.redis_url or not settings.redis_token:
            raise ValueError(ERROR_REDIS_CREDENTIALS)
        _redis_client = AsyncRedis(url=settings.redis_url, token=settings.redis_token)

    return _redis_client


class MemoryBackend:
    """Dict-backed store. Survives engine restarts, not process restarts."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value


class FileBackend:
    """
    Stores each key as <data_dir>/<key>.json.

    Writes land in a temp file in the same directory and are moved into place
    with os.replace, so a crash mid-write leaves the previous snapshot.
    """

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key) or key in (".", ".."):
            raise ValueError(f"{ERROR_STORE_KEY}: {key!r}")
        return self.data_dir / f"{key.replace(':', '_')}.json"

    def _read(self, path: Path) -> Optional[str]:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self, path: Path, value: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, self._path(key))

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, self._path(key), value)


class RedisBackend:
    """Upstash Redis store with an optional key prefix and TTL."""

    def __init__(
        self,
        client: Optional[AsyncRedis] = None,
        key_prefix: str = "",
        ttl: Optional[int] = None,
    ):
        self._client = client
        self.key_prefix = key_prefix
        self.ttl = ttl

    @property
    def redis(self) -> AsyncRedis:
        """Get Redis client (lazy initialization)."""
        if self._client is None:
            self._client = get_redis()
        return self._client

    def redis_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        return await self.redis.get(self.redis_key(key))

    async def set(self, key: str, value: str) -> None:
        if self.ttl:
            await self.redis.set(self.redis_key(key), value, ex=self.ttl)
        else:
            await self.redis.set(self.redis_key(key), value)


def create_backend(settings: Optional[StoreSettings] = None) -> KeyValueBackend:
    """Build the backend named by settings.backend."""
    settings = settings or StoreSettings.from_env()

    if settings.backend == BACKEND_MEMORY:
        return MemoryBackend()
    if settings.backend == BACKEND_FILE:
        return FileBackend(settings.data_dir)
    if settings.backend == BACKEND_REDIS:
        return RedisBackend(
            client=get_redis(settings),
            key_prefix=settings.key_prefix,
            ttl=settings.ttl,
        )
    raise ValueError(f"{ERROR_STORE_BACKEND}: {settings.backend!r}")
