"""Cart package: models, merge rules, cache, remote client, store and facade."""
from .models import Cart, LineItem, SyncState
from .reconcile import Reconciliation, reconcile
from .storage import LocalCartCache
from .remote import RemoteCartClient
from .service import CartStore
from .facade import CartFacade, create_cart_facade

__all__ = [
    "Cart",
    "LineItem",
    "SyncState",
    "Reconciliation",
    "reconcile",
    "LocalCartCache",
    "RemoteCartClient",
    "CartStore",
    "CartFacade",
    "create_cart_facade",
]
