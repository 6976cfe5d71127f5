"""
Cart Sync Errors

Error taxonomy shared by the remote client, the local cache and the store.
Only InvalidMutation ever reaches callers of the cart; everything else is
absorbed by degrading to the local cart.
"""

from typing import Optional

# Messages
ERROR_UNAUTHENTICATED = "No valid credential for the cart service"
ERROR_REMOTE_UNAVAILABLE = "Cart service unavailable"
ERROR_CORRUPT_LOCAL_STATE = "Stored cart could not be parsed"
ERROR_QUANTITY_TOO_LOW = "quantity must be an integer >= 1, use remove to delete a line item"
ERROR_PRODUCT_ID_REQUIRED = "product_id must be a non-empty string"
ERROR_LINE_ITEM_NOT_FOUND = "Line item not found in cart"


class CartSyncError(Exception):
    """Base class for every cart synchronization failure."""


class Unauthenticated(CartSyncError):
    """The cart service rejected the request for lack of a valid credential."""

    def __init__(self, message: str = ERROR_UNAUTHENTICATED):
        super().__init__(message)


class RemoteUnavailable(CartSyncError):
    """Network failure, timeout, non-2xx response or unreadable body."""

    def __init__(
        self,
        message: str = ERROR_REMOTE_UNAVAILABLE,
        status_code: Optional[int] = None,
        transient: bool = False,
    ):
        super().__init__(message)
        self.status_code = status_code
        # Transport-level failures (connect, timeout) are worth retrying
        self.transient = transient


class CorruptLocalState(CartSyncError):
    """The persisted cart snapshot failed to parse."""

    def __init__(self, message: str = ERROR_CORRUPT_LOCAL_STATE):
        super().__init__(message)


class InvalidMutation(CartSyncError, ValueError):
    """A mutation was rejected before any remote call was attempted."""


__all__ = [
    "CartSyncError",
    "Unauthenticated",
    "RemoteUnavailable",
    "CorruptLocalState",
    "InvalidMutation",
    "ERROR_UNAUTHENTICATED",
    "ERROR_REMOTE_UNAVAILABLE",
    "ERROR_CORRUPT_LOCAL_STATE",
    "ERROR_QUANTITY_TOO_LOW",
    "ERROR_PRODUCT_ID_REQUIRED",
    "ERROR_LINE_ITEM_NOT_FOUND",
]
