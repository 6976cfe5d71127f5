"""Cart Facade - the public cart interface for UI collaborators."""
from typing import Any, Callable, Dict, Optional

from cartsync.money import to_float
from .models import Cart, SyncState
from .remote import CredentialProvider, RemoteCartClient
from .service import CartStore, Observer, ProductLike
from .storage import LocalCartCache


class CartFacade:
    """
    Always-available view of the cart.

    Every mutation resolves with the updated cart even when the cart
    service is unreachable; only invalid input (InvalidMutation, a
    ValueError) is raised to the caller.
    """

    def __init__(self, store: CartStore):
        self._store = store

    @property
    def current_cart(self) -> Cart:
        return self._store.cart

    @property
    def sync_state(self) -> SyncState:
        """Read-only sync indicator."""
        return self._store.sync_state

    @property
    def last_error(self):
        """Most recent absorbed sync error, for soft notifications."""
        return self._store.last_error

    async def refresh(self) -> Cart:
        """Pull and reconcile; call on page load."""
        return await self._store.load()

    async def add(self, product: ProductLike, quantity: Optional[int] = None) -> Cart:
        return await self._store.add_item(product, quantity)

    async def set_quantity(self, line_item_id: str, quantity: int) -> Cart:
        return await self._store.set_quantity(line_item_id, quantity)

    async def remove(self, line_item_id: str) -> Cart:
        return await self._store.remove_item(line_item_id)

    async def clear(self) -> Cart:
        return await self._store.clear()

    def subscribe(self, callback: Observer) -> Callable[[], None]:
        return self._store.subscribe(callback)

    def summary(self) -> Dict[str, Any]:
        """Cart summary for display; prices are snapshot-based fallbacks."""
        cart = self.current_cart
        if cart.is_empty:
            return {
                "is_empty": True,
                "total_items": 0,
                "subtotal": 0.0,
                "items": [],
                "sync_state": self.sync_state.value,
            }

        return {
            "is_empty": False,
            "total_items": cart.total_items,
            "subtotal": to_float(cart.subtotal),
            "items": [
                {
                    "id": item.id,
                    "product_id": item.product_id,
                    "name": item.name,
                    "quantity": item.quantity,
                    "unit_price": to_float(item.unit_price_snapshot),
                    "total_price": to_float(item.total_price),
                }
                for item in cart.items
            ],
            "sync_state": self.sync_state.value,
        }


def create_cart_facade(
    owner: Optional[str] = None,
    credential_provider: Optional[CredentialProvider] = None,
    redis=None,
    base_url: Optional[str] = None,
) -> CartFacade:
    """
    Wire the default cart: Redis-backed local cache and httpx remote client,
    both configured from the environment. Await `refresh()` before use.
    """
    cache = LocalCartCache(redis=redis, owner=owner)
    remote = RemoteCartClient(base_url=base_url, credential_provider=credential_provider)
    return CartFacade(CartStore(remote, cache))
