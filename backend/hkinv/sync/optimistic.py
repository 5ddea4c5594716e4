# Overview: Queue of unconfirmed local patches layered over the last server snapshot.

from __future__ import annotations

import threading
from typing import Callable, Generic, Sequence, TypeVar

T = TypeVar("T")

# A patch is a pure function from one list to the next
Patch = Callable[[list], list]


class OptimisticQueue(Generic[T]):
    """
    Ordered queue of not-yet-confirmed local mutations.

    - enqueue() only appends; nothing runs until materialize().
    - materialize(base) folds every patch over a copy of base, in insertion
      order. base is never mutated and the same queue state always yields an
      equal list.
    - reset() drops every patch; it runs after each authoritative refresh.
    """

    def __init__(self) -> None:
        self._patches: list[Patch] = []
        self._lock = threading.Lock()

    def enqueue(self, patch: Patch) -> None:
        if not callable(patch):
            raise TypeError("patch must be callable")
        with self._lock:
            self._patches.append(patch)

    def materialize(self, base: Sequence[T]) -> list[T]:
        with self._lock:
            patches = list(self._patches)
        current = list(base)
        for patch in patches:
            current = list(patch(list(current)))
        return current

    def reset(self) -> None:
        with self._lock:
            self._patches.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._patches)


def _key(record, key: str):
    if isinstance(record, dict):
        return record.get(key)
    return getattr(record, key, None)


def add_patch(record) -> Patch:
    return lambda items: [*items, record]


def replace_patch(record, key: str = "id") -> Patch:
    target = _key(record, key)
    return lambda items: [record if _key(i, key) == target else i for i in items]


def remove_patch(record_id, key: str = "id") -> Patch:
    return lambda items: [i for i in items if _key(i, key) != record_id]
