# Overview: Server-backed collection with optimistic patches and refresh triggers.

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, Sequence, TypeVar

from .feeds import ChangeFeed
from .optimistic import OptimisticQueue, Patch
from .refresher import PeriodicRefresher

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SyncedCollection(Generic[T]):
    """
    A server-backed list plus the local mutations not yet confirmed.

    view() is what a screen shows: the last authoritative list with the
    optimistic patches applied. refresh() replaces the list and drops every
    patch, so the server state always wins.
    """

    def __init__(
        self,
        table: str,
        fetch: Callable[[], Sequence[T]],
        *,
        interval: float | None = None,
        feed: ChangeFeed | None = None,
    ):
        self.table = table
        self._fetch = fetch
        self._base: list[T] = []
        self._base_lock = threading.Lock()
        self.queue: OptimisticQueue[T] = OptimisticQueue()
        self.refresher = PeriodicRefresher(self.refresh, interval=interval) if interval else None
        self._unsubscribe = feed.subscribe(table, self._on_change) if feed else None

    def refresh(self) -> list[T]:
        fresh = list(self._fetch())
        with self._base_lock:
            self._base = fresh
        self.queue.reset()
        return fresh

    def apply(self, patch: Patch) -> list[T]:
        self.queue.enqueue(patch)
        return self.view()

    def view(self) -> list[T]:
        with self._base_lock:
            base = list(self._base)
        return self.queue.materialize(base)

    @property
    def base(self) -> list[T]:
        with self._base_lock:
            return list(self._base)

    def _on_change(self, table: str, change: dict) -> None:
        logger.debug("%s changed (%s); refreshing", table, change.get("action"))
        if self.refresher is not None:
            self.refresher.trigger("change")
        else:
            self.refresh()

    def start(self) -> None:
        if self.refresher is not None:
            self.refresher.start()

    def close(self) -> None:
        if self.refresher is not None:
            self.refresher.stop()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
