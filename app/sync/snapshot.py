"""Copy-on-write cache shared between one sync engine and many readers."""

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class SnapshotCache(Generic[K, V]):
    """Map whose readers always see an immutable, internally consistent snapshot.

    Only the owning sync engine calls the write methods. Each write builds a new
    dict and swaps the reference, so a reader holding an older snapshot is never
    affected and no locking is needed on the read path.
    """

    def __init__(self) -> None:
        self._snapshot: Mapping[K, V] = MappingProxyType({})

    def snapshot(self) -> Mapping[K, V]:
        """Return the current read-only view."""
        return self._snapshot

    def get(self, key: K) -> V | None:
        return self._snapshot.get(key)

    def __len__(self) -> int:
        return len(self._snapshot)

    def put(self, key: K, value: V) -> None:
        """Insert or replace one entry."""
        updated = dict(self._snapshot)
        updated[key] = value
        self._snapshot = MappingProxyType(updated)

    def put_many(self, items: Iterable[tuple[K, V]]) -> None:
        """Insert or replace several entries in a single swap."""
        updated = dict(self._snapshot)
        updated.update(items)
        self._snapshot = MappingProxyType(updated)

    def clear(self) -> None:
        self._snapshot = MappingProxyType({})
