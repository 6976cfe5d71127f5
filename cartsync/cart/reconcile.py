"""
Reconciliation Engine

Decides which snapshot becomes the working cart when both a local snapshot
and a remote read outcome are available. Remote wins on content, local wins
on availability:

- a successful remote read replaces local state entirely and must be
  mirrored into the local cache;
- a failed remote read (unauthenticated or unreachable) leaves the local
  snapshot as the working cart, unchanged.

Quantities from the two sides are never summed or otherwise merged.
"""

from dataclasses import dataclass
from typing import Optional, Union

from cartsync.errors import CartSyncError
from .models import Cart, SyncState


@dataclass
class Reconciliation:
    """Outcome of a reconcile: the working cart and how it was obtained."""
    cart: Cart
    state: SyncState
    persist: bool  # Mirror the cart into the local cache
    error: Optional[CartSyncError] = None


def reconcile(local: Cart, remote: Union[Cart, CartSyncError]) -> Reconciliation:
    """
    Reconcile a local snapshot with a remote read outcome.

    Args:
        local: Snapshot from the local cache (or the in-memory cart)
        remote: The cart returned by the remote read, or the error it raised

    Returns:
        Reconciliation with the working cart and resulting sync state
    """
    if isinstance(remote, CartSyncError):
        return Reconciliation(cart=local, state=SyncState.DEGRADED, persist=False, error=remote)
    return Reconciliation(cart=remote, state=SyncState.AUTHORITATIVE, persist=True)
