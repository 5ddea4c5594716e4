# Overview: Change feeds that tell synced collections when a table changed, by polling or by signal.

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Callable

from ..signals import record_changed
from .refresher import PeriodicRefresher

logger = logging.getLogger(__name__)

# on_change(table, change) where change carries at least "action"
ChangeCallback = Callable[[str, dict], None]


class ChangeFeed(ABC):
    """Tells subscribers that a table changed. The payload is a hint; subscribers refetch."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[ChangeCallback]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, table: str, on_change: ChangeCallback) -> Callable[[], None]:
        with self._lock:
            self._subscribers[table].append(on_change)
        self._on_subscribe(table)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(table, [])
                if on_change in callbacks:
                    callbacks.remove(on_change)
                if not callbacks:
                    self._subscribers.pop(table, None)

        return unsubscribe

    def tables(self) -> list[str]:
        with self._lock:
            return sorted(self._subscribers)

    def _publish(self, table: str, change: dict) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(table, ()))
        for callback in callbacks:
            try:
                callback(table, change)
            except Exception:
                logger.exception("Change subscriber for %s failed", table)

    def _on_subscribe(self, table: str) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        ...


class PollingChangeFeed(ChangeFeed):
    """
    Polls fetch(table) for every subscribed table and publishes when the
    snapshot differs from the previous one. The first poll only records the
    baseline.
    """

    def __init__(self, fetch: Callable[[str], object], *, interval: float = 30.0):
        super().__init__()
        self._fetch = fetch
        self._snapshots: dict[str, object] = {}
        self._refresher = PeriodicRefresher(self.poll_once, interval=interval, name="hkinv-change-poll")

    def _on_subscribe(self, table: str) -> None:
        if table not in self._snapshots:
            self._snapshots[table] = self._fetch(table)

    def poll_once(self) -> list[str]:
        changed = []
        for table in self.tables():
            snapshot = self._fetch(table)
            previous = self._snapshots.get(table)
            self._snapshots[table] = snapshot
            if previous != snapshot:
                changed.append(table)
                self._publish(table, {"action": "poll"})
        return changed

    def start(self) -> None:
        self._refresher.start()

    def close(self) -> None:
        self._refresher.stop()


class SignalChangeFeed(ChangeFeed):
    """Push backend: relays the record store's record_changed signal."""

    def __init__(self) -> None:
        super().__init__()
        record_changed.connect(self._on_record_changed, weak=False)

    def _on_record_changed(self, sender, **kwargs) -> None:
        self._publish(sender, {"action": kwargs.get("action"), "record_id": kwargs.get("record_id")})

    def close(self) -> None:
        record_changed.disconnect(self._on_record_changed)
