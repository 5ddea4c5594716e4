# Overview: HTTP client for the inventory API and server-backed synced collections.

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx

from .collection import SyncedCollection
from .feeds import ChangeFeed
from .optimistic import add_patch, remove_patch, replace_patch
from .refresher import PeriodicRefresher

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, payload: dict | None = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}


class InventoryApiClient:
    """
    JSON API client. The acting user travels in the X-User-Id header.

    Pass transport=httpx.WSGITransport(app=flask_app) to talk to an
    in-process app without a server.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        *,
        user_id: int | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.user_id = user_id
        self.client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.user_id is not None:
            headers["X-User-Id"] = str(self.user_id)
        return headers

    def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        return self.client.request(method, path, headers=self._headers(), **kwargs)

    def get(self, path: str, params: dict | None = None) -> httpx.Response:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: dict | None = None, **kwargs) -> httpx.Response:
        return self.request("POST", path, json=json, **kwargs)

    def put(self, path: str, json: dict | None = None) -> httpx.Response:
        return self.request("PUT", path, json=json)

    def delete(self, path: str) -> httpx.Response:
        return self.request("DELETE", path)

    def _json(self, response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.is_error:
            message = data.get("message") or data.get("error") or response.reason_phrase
            raise ApiError(response.status_code, message, data)
        return data

    # -- resources ------------------------------------------------------------

    def list(self, resource: str, **params) -> list[dict]:
        data = self._json(self.get(f"/api/{resource}", params=params or None))
        return data.get("items", [])

    def create(self, resource: str, payload: dict, *, key: str) -> dict:
        return self._json(self.post(f"/api/{resource}", json=payload))[key]

    def update(self, resource: str, record_id: int, payload: dict, *, key: str) -> dict:
        return self._json(self.put(f"/api/{resource}/{record_id}", json=payload))[key]

    def remove(self, resource: str, record_id: int) -> dict:
        return self._json(self.delete(f"/api/{resource}/{record_id}"))

    def fetcher(self, resource: str, **params) -> Callable[[], list[dict]]:
        return lambda: self.list(resource, **params)

    def synced(
        self,
        resource: str,
        *,
        interval: float | None = None,
        feed: ChangeFeed | None = None,
    ) -> "SyncedResource":
        return SyncedResource(self, resource, interval=interval, feed=feed)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "InventoryApiClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class SyncedResource(SyncedCollection[dict]):
    """
    A SyncedCollection whose writes go through the API.

    The optimistic patch is queued before the request. Afterwards a resync
    replaces it with what the server actually holds. A failed resync is
    logged and keeps the optimistic state; it never hides the write result
    or the write error.
    """

    KEYS = {
        "items": "item",
        "transactions": "transaction",
        "categories": "category",
        "suppliers": "supplier",
        "users": "user",
        "depreciations": "depreciation",
    }

    def __init__(self, api: InventoryApiClient, resource: str, *, interval=None, feed=None):
        table = resource.replace("-", "_")
        super().__init__(table, api.fetcher(resource), interval=interval, feed=feed)
        self.api = api
        self.resource = resource
        self.key = self.KEYS.get(resource, "data")
        # Shares the in-flight guard with the periodic loop when there is one
        self._resync = self.refresher or PeriodicRefresher(self.refresh, name=f"hkinv-{resource}-resync")

    def _confirm(self, call: Callable[[], Any]) -> Any:
        try:
            result = call()
        except (ApiError, httpx.HTTPError) as e:
            logger.warning("%s write failed, dropping optimistic state: %s", self.resource, e)
            self._resync.trigger("write")
            raise
        self._resync.trigger("write")
        return result

    def create(self, payload: dict) -> dict:
        self.apply(add_patch({**payload, "id": None}))
        return self._confirm(lambda: self.api.create(self.resource, payload, key=self.key))

    def update(self, record_id: int, payload: dict) -> dict:
        current = next((r for r in self.view() if r.get("id") == record_id), None)
        if current is not None:
            self.apply(replace_patch({**current, **payload}))
        return self._confirm(lambda: self.api.update(self.resource, record_id, payload, key=self.key))

    def remove(self, record_id: int) -> dict:
        self.apply(remove_patch(record_id))
        return self._confirm(lambda: self.api.remove(self.resource, record_id))
