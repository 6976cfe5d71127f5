"""
cartsync - Cart Synchronization Engine

This package keeps a shopping cart consistent between an authoritative
remote cart service and a locally persisted fallback cache:
- db: Upstash Redis client and key layout for the local cache
- cart: models, merge rules, reconciliation, cache, remote client, store
- errors: sync error taxonomy
- logging: logger factory

Note: Imports are lazy so that importing the package does not require
the Redis or HTTP clients to be configured.
"""

__all__ = [
    "CartFacade",
    "CartStore",
    "create_cart_facade",
    "get_redis",
]


def __getattr__(name):
    """Lazy attribute access for clean module loading."""
    if name == "CartFacade":
        from cartsync.cart.facade import CartFacade
        return CartFacade
    elif name == "create_cart_facade":
        from cartsync.cart.facade import create_cart_facade
        return create_cart_facade
    elif name == "CartStore":
        from cartsync.cart.service import CartStore
        return CartStore
    elif name == "get_redis":
        from cartsync.db import get_redis
        return get_redis
    raise AttributeError(f"module 'cartsync' has no attribute '{name}'")
