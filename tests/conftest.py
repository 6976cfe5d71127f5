"""Pytest configuration and fixtures"""
import asyncio
from typing import Any, Dict, List, Optional

import pytest

from cartsync.cart.merge import apply_add, apply_remove, apply_set_quantity
from cartsync.cart.models import Cart, LineItem
from cartsync.cart.service import CartStore
from cartsync.cart.storage import LocalCartCache
from cartsync.errors import RemoteUnavailable


class FakeRedis:
    """Async key/value store with the upstash_redis call shape."""

    def __init__(self):
        self.data: Dict[str, Any] = {}
        self.expiry: Dict[str, Optional[int]] = {}
        self.fail_reads = False
        self.fail_writes = False

    async def get(self, key: str):
        if self.fail_reads:
            raise ConnectionError("redis down")
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None):
        if self.fail_writes:
            raise ConnectionError("redis down")
        self.data[key] = value
        self.expiry[key] = ex
        return True

    async def delete(self, key: str):
        self.data.pop(key, None)
        return 1


class FakeCartService:
    """
    In-memory cart service with the real service's merge semantics.

    `error` makes every call fail; `gates` holds one-shot events that
    block the next call of that name until set.
    """

    def __init__(self, items: Optional[List[LineItem]] = None):
        self.cart = Cart(items=list(items or []))
        self.error: Optional[Exception] = None
        self.calls: List[tuple] = []
        self.gates: Dict[str, asyncio.Event] = {}
        self._next_id = 100

    async def _enter(self, name: str, *args):
        self.calls.append((name, *args))
        gate = self.gates.pop(name, None)
        if gate is not None:
            await gate.wait()
        if self.error is not None:
            raise self.error

    async def fetch(self) -> Cart:
        await self._enter("fetch")
        return self.cart

    async def add_item(self, product_id, quantity_delta, display_fields=None) -> Cart:
        await self._enter("add_item", product_id, quantity_delta)
        template = self.cart.find_by_product(product_id)
        if template is None:
            self._next_id += 1
            fields = display_fields or {}
            template = LineItem(
                id=f"srv-{self._next_id}",
                product_id=product_id,
                name=fields.get("name", ""),
                unit_price_snapshot=fields.get("unitPriceSnapshot", 0),
            )
        self.cart = apply_add(self.cart, template, quantity_delta)
        return self.cart

    async def set_quantity(self, line_item_id, quantity) -> Cart:
        await self._enter("set_quantity", line_item_id, quantity)
        if self.cart.find_by_id(line_item_id) is None:
            raise RemoteUnavailable("Cart service returned 404", status_code=404)
        self.cart = apply_set_quantity(self.cart, line_item_id, quantity)
        return self.cart

    async def remove_item(self, line_item_id) -> Cart:
        await self._enter("remove_item", line_item_id)
        self.cart = apply_remove(self.cart, line_item_id)
        return self.cart

    async def clear(self) -> None:
        await self._enter("clear")
        self.cart = Cart()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return LocalCartCache(redis=fake_redis, owner="user-123")


@pytest.fixture
def cart_service():
    return FakeCartService()


@pytest.fixture
def store(cart_service, cache):
    return CartStore(cart_service, cache)


@pytest.fixture
def sample_product():
    """Sample product as the catalog hands it to the cart"""
    return {
        "productId": "prod-123",
        "name": "Lavender Candle",
        "price": 79.9,
        "image": "https://cdn.test/candle.png",
    }
