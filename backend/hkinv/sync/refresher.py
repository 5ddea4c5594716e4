# Overview: Background refresh loop with a single in-flight guard.

from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class PeriodicRefresher:
    """
    Runs refresh() every `interval` seconds on a daemon thread, and on demand
    when the connection comes back or the view becomes visible again.

    Only one refresh runs at a time: a trigger that arrives while one is in
    flight is dropped. A failing refresh is logged and does not stop the loop.
    """

    def __init__(self, refresh: Callable[[], object], *, interval: float = 30.0, name: str = "hkinv-refresher"):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._refresh = refresh
        self._interval = interval
        self._name = name
        self._in_flight = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.last_error: Exception | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def trigger(self, reason: str = "manual") -> bool:
        """Run one refresh now. Returns False if it was skipped or failed."""
        if not self._in_flight.acquire(blocking=False):
            logger.debug("Refresh (%s) skipped: another refresh is in flight", reason)
            return False
        try:
            self._refresh()
            self.last_error = None
            return True
        except Exception as e:
            # The loop must survive a failed fetch; the optimistic state is kept
            self.last_error = e
            logger.warning("Refresh (%s) failed: %s", reason, e)
            return False
        finally:
            self._in_flight.release()

    def notify_reconnect(self) -> bool:
        return self.trigger("reconnect")

    def notify_visible(self) -> bool:
        return self.trigger("visible")

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name=self._name, daemon=True)
        self._thread.start()
        logger.info("Refresher started (every %ss)", self._interval)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None
        logger.info("Refresher stopped")

    def _run_loop(self) -> None:
        while not self._stop_event.wait(self._interval):
            self.trigger("interval")
