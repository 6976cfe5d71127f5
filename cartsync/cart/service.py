"""
Cart Store - the stateful core behind the cart facade.

Owns the working cart and applies every mutation through one transition:

1. apply the mutation optimistically (synchronously, before any await);
2. attempt the matching remote call;
3. on success adopt the server's canonical cart, go AUTHORITATIVE and
   mirror it into the local cache;
4. on failure keep the optimistic cart, go DEGRADED and persist it so a
   reload does not lose the pending mutation.

Each remote round trip is tagged with a sequence number. Only the most
recently started request may replace state; stragglers are ignored.
"""

from typing import Any, Awaitable, Callable, List, Mapping, Optional, Union

from cartsync.errors import (
    ERROR_PRODUCT_ID_REQUIRED,
    CartSyncError,
    InvalidMutation,
    RemoteUnavailable,
    Unauthenticated,
)
from cartsync.logging import get_logger, sanitize_id_for_logging
from .merge import apply_add, apply_clear, apply_remove, apply_set_quantity, validate_quantity
from .models import Cart, LineItem, SyncState
from .reconcile import reconcile
from .remote import RemoteCartClient
from .storage import LocalCartCache

logger = get_logger(__name__)

ProductLike = Union[LineItem, Mapping[str, Any], str]
Observer = Callable[[Cart, SyncState], None]


def coerce_product(product: ProductLike) -> LineItem:
    """
    Build the line item template for an add request.

    Accepts a LineItem, a product mapping (productId / product_id / id plus
    display fields) or a bare product id.
    """
    if isinstance(product, LineItem):
        template = product
    elif isinstance(product, str):
        template = LineItem(id=product, product_id=product)
    elif isinstance(product, Mapping):
        data = dict(product)
        identifiers = [data.pop(key, None) for key in ("productId", "product_id", "id")]
        product_id = next((value for value in identifiers if value), None)
        if not product_id:
            raise InvalidMutation(ERROR_PRODUCT_ID_REQUIRED)
        data.pop("quantity", None)
        prices = [data.pop(key, None) for key in ("unitPriceSnapshot", "unit_price_snapshot", "price")]
        price = next((value for value in prices if value is not None), None)
        template = LineItem(
            id=str(product_id),
            product_id=str(product_id),
            unit_price_snapshot=price,
            name=data.pop("name", "") or "",
            image=data.pop("image", None),
            attributes=data,
        )
    else:
        raise InvalidMutation(f"Unsupported product type: {type(product).__name__}")

    if not template.product_id:
        raise InvalidMutation(ERROR_PRODUCT_ID_REQUIRED)
    return template


class CartStore:
    """
    Single writer of the working cart.

    The remote client and the local cache are injected, so tests and
    alternative deployments can substitute their own.
    """

    def __init__(
        self,
        remote: RemoteCartClient,
        cache: LocalCartCache,
        *,
        on_change: Optional[Observer] = None,
    ):
        self._remote = remote
        self._cache = cache
        self._cart = Cart()
        self._state = SyncState.LOADING
        self._sequence = 0
        self._observers: List[Observer] = []
        self.last_error: Optional[CartSyncError] = None
        if on_change is not None:
            self.subscribe(on_change)

    @property
    def cart(self) -> Cart:
        return self._cart

    @property
    def sync_state(self) -> SyncState:
        return self._state

    # ==================== OBSERVERS ====================

    def subscribe(self, callback: Observer) -> Callable[[], None]:
        """Register a (cart, sync_state) callback. Returns an unsubscribe function."""
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _replace(self, cart: Cart, state: SyncState) -> None:
        if state != self._state:
            logger.debug("Cart sync state %s -> %s", self._state.value, state.value)
        self._cart = cart
        self._state = state
        for callback in list(self._observers):
            try:
                callback(cart, state)
            except Exception:
                logger.exception("Cart observer failed")

    def _begin(self) -> int:
        self._sequence += 1
        return self._sequence

    def _is_current(self, sequence: int, action: str) -> bool:
        if sequence == self._sequence:
            return True
        logger.debug("Ignoring stale %s response (request %s, latest %s)", action, sequence, self._sequence)
        return False

    def _degrade(self, error: CartSyncError, action: str) -> None:
        self.last_error = error
        if isinstance(error, Unauthenticated):
            logger.info("Cart %s kept local: %s", action, error)
        else:
            logger.warning("Cart %s kept local, cart service failed: %s", action, error)

    async def _call_remote(self, action: str, remote_call: Callable[[], Awaitable[Any]]) -> Any:
        """Run a remote call; every failure other than InvalidMutation becomes a CartSyncError."""
        try:
            return await remote_call()
        except (CartSyncError, InvalidMutation):
            raise
        except Exception as e:
            logger.exception("Unexpected cart service failure during %s", action)
            raise RemoteUnavailable(f"Unexpected cart service failure: {e.__class__.__name__}") from e

    # ==================== LOAD / RECONCILE ====================

    async def load(self) -> Cart:
        """
        Page-load reconcile: hydrate from the local cache, then let a
        successful remote read replace it. Calling it again refreshes.
        """
        sequence = self._begin()

        if self._state == SyncState.LOADING:
            local = await self._cache.load()
            if sequence == self._sequence:
                self._replace(local, SyncState.LOADING)

        outcome: Union[Cart, CartSyncError]
        try:
            outcome = await self._call_remote("fetch", self._remote.fetch)
        except InvalidMutation:
            raise
        except CartSyncError as e:
            outcome = e

        if not self._is_current(sequence, "fetch"):
            return self._cart

        result = reconcile(self._cart, outcome)
        if result.error is not None:
            self._degrade(result.error, "load")
        else:
            self.last_error = None
        self._replace(result.cart, result.state)
        if result.persist:
            await self._cache.save(result.cart)
        return self._cart

    # ==================== MUTATIONS ====================

    async def _mutate(
        self,
        action: str,
        optimistic: Cart,
        remote_call: Callable[[], Awaitable[Optional[Cart]]],
    ) -> Cart:
        """Shared transition for every mutation (see module docstring)."""
        sequence = self._begin()
        self._replace(optimistic, self._state)

        try:
            canonical = await self._call_remote(action, remote_call)
        except InvalidMutation:
            raise
        except CartSyncError as e:
            if not self._is_current(sequence, action):
                return self._cart
            self._degrade(e, action)
            self._replace(self._cart, SyncState.DEGRADED)
            await self._cache.save(self._cart)
            return self._cart

        if not self._is_current(sequence, action):
            return self._cart

        if canonical is None:
            # Endpoints without a body (clear) confirm the optimistic cart
            canonical = optimistic
        self.last_error = None
        self._replace(canonical, SyncState.AUTHORITATIVE)
        await self._cache.save(canonical)
        return self._cart

    async def add_item(self, product: ProductLike, quantity: Optional[int] = None) -> Cart:
        """
        Add units of a product, merging into an existing line for it.

        Without an explicit quantity, a product mapping's own "quantity"
        is the delta (default 1).
        """
        if quantity is None:
            quantity = product.get("quantity") if isinstance(product, Mapping) else None
            if quantity is None:
                quantity = 1
        validate_quantity(quantity)
        template = coerce_product(product)
        optimistic = apply_add(self._cart, template, quantity)
        logger.debug("Add %s x%s", sanitize_id_for_logging(template.product_id), quantity)
        return await self._mutate(
            "add",
            optimistic,
            lambda: self._remote.add_item(template.product_id, quantity, template.display_fields()),
        )

    async def set_quantity(self, line_item_id: str, quantity: int) -> Cart:
        """Set an absolute quantity (>= 1); use remove_item to delete a line."""
        optimistic = apply_set_quantity(self._cart, line_item_id, quantity)
        return await self._mutate(
            "set_quantity",
            optimistic,
            lambda: self._remote.set_quantity(line_item_id, quantity),
        )

    async def remove_item(self, line_item_id: str) -> Cart:
        optimistic = apply_remove(self._cart, line_item_id)
        return await self._mutate(
            "remove",
            optimistic,
            lambda: self._remote.remove_item(line_item_id),
        )

    async def clear(self) -> Cart:
        return await self._mutate("clear", apply_clear(self._cart), self._remote.clear)
