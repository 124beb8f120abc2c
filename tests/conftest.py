"""Pytest configuration and fixtures"""
import asyncio
import os
from typing import Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

# Set test environment variables
os.environ.setdefault("ORDERLINES_STORE", "memory")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from orderlines.db import MemoryBackend
from orderlines.lines import LineEngine, LineStore


class FlakyBackend(MemoryBackend):
    """Memory backend whose reads and writes can be made to fail."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__(initial)
        self.fail_reads = False
        self.fail_writes = False
        self.gate: Optional[asyncio.Event] = None
        self.gets: List[str] = []
        self.sets: List[str] = []

    async def get(self, key: str) -> Optional[str]:
        self.gets.append(key)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_reads:
            raise ConnectionError("store offline")
        return await super().get(key)

    async def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise ConnectionError("store offline")
        self.sets.append(key)
        await super().set(key, value)


@pytest.fixture
def backend():
    """Memory backend with failure switches"""
    return FlakyBackend()


@pytest.fixture
def store(backend):
    """Line store over the memory backend"""
    return LineStore(backend)


@pytest.fixture
def cart(store):
    """Cart engine, not yet hydrated"""
    return LineEngine("cart", store=store)


@pytest.fixture
def print_queue(store):
    """Print queue engine sharing the cart's store"""
    return LineEngine("print", store=store)


@pytest.fixture
def sample_product():
    """Product as returned by the product API"""
    return {
        "product_id": "P1",
        "_id": "66f1c0a2e4b0a1b2c3d4e5f6",
        "name": "Jasmine Rice 5kg",
        "price": 10.0,
        "size": "5kg",
        "image": "https://cdn.example.com/p1.jpg",
        "category": "Grocery",
    }


@pytest.fixture
def mock_redis_client():
    """Mock async Upstash Redis client"""
    client = AsyncMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    return client
