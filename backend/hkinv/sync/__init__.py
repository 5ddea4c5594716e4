# Overview: Client-side sync package exports.

"""Client-side reconciliation: optimistic patches over periodically refreshed server state."""

from .optimistic import OptimisticQueue, Patch, add_patch, replace_patch, remove_patch
from .refresher import PeriodicRefresher
from .feeds import ChangeFeed, PollingChangeFeed, SignalChangeFeed
from .collection import SyncedCollection
from .client import ApiError, InventoryApiClient, SyncedResource

__all__ = [
    "OptimisticQueue",
    "Patch",
    "add_patch",
    "replace_patch",
    "remove_patch",
    "PeriodicRefresher",
    "ChangeFeed",
    "PollingChangeFeed",
    "SignalChangeFeed",
    "SyncedCollection",
    "ApiError",
    "InventoryApiClient",
    "SyncedResource",
]
