"""
Cart merge rules.

Pure functions that compute the next cart from the current one. The store
uses them for optimistic updates; they mirror what the cart service does
with the same request, so a cart evolves identically online and offline.
None of them mutate their input.
"""

from typing import Any

from cartsync.errors import (
    ERROR_LINE_ITEM_NOT_FOUND,
    ERROR_PRODUCT_ID_REQUIRED,
    ERROR_QUANTITY_TOO_LOW,
    InvalidMutation,
)
from .models import Cart, LineItem


def validate_quantity(quantity: Any) -> int:
    """Return quantity if it is an int >= 1, otherwise raise InvalidMutation."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidMutation(ERROR_QUANTITY_TOO_LOW)
    return quantity


def apply_add(cart: Cart, product: LineItem, quantity: int = 1) -> Cart:
    """
    Add `quantity` units of a product.

    An existing line for the same product is incremented in place (keeping
    its position); otherwise a new line is appended with the given quantity.
    """
    validate_quantity(quantity)
    if not product.product_id:
        raise InvalidMutation(ERROR_PRODUCT_ID_REQUIRED)

    existing = cart.find_by_product(product.product_id)
    if existing is not None:
        return Cart(items=[
            item.with_quantity(item.quantity + quantity) if item is existing else item
            for item in cart.items
        ])

    return Cart(items=[*cart.items, product.with_quantity(quantity)])


def apply_set_quantity(cart: Cart, line_item_id: str, quantity: int) -> Cart:
    """Set an absolute quantity (>= 1) on an existing line item."""
    validate_quantity(quantity)
    target = cart.find_by_id(line_item_id)
    if target is None:
        raise InvalidMutation(ERROR_LINE_ITEM_NOT_FOUND)
    return Cart(items=[
        item.with_quantity(quantity) if item is target else item
        for item in cart.items
    ])


def apply_remove(cart: Cart, line_item_id: str) -> Cart:
    """Remove a line item; unknown ids leave the cart unchanged."""
    return Cart(items=[item for item in cart.items if item.id != str(line_item_id)])


def apply_clear(cart: Cart) -> Cart:
    return Cart()
