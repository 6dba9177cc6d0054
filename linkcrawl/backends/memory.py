"""Process-local state backend; every operation holds one shared lock."""

from __future__ import annotations

import threading
from typing import Iterator

from ..types import LinkStatus, URI
from .base import FrontierQueue, MultiMap, StateBackend, StatusMap


class InMemoryStatusMap(StatusMap):
    def __init__(self, lock: threading.RLock) -> None:
        self._lock = lock
        self._data: dict[URI, LinkStatus] = {}

    def get(self, uri: URI) -> LinkStatus | None:
        with self._lock:
            return self._data.get(uri)

    def put(self, uri: URI, status: LinkStatus) -> None:
        with self._lock:
            self._data[uri] = status

    def remove(self, uri: URI) -> None:
        with self._lock:
            self._data.pop(uri, None)

    def contains(self, uri: URI) -> bool:
        with self._lock:
            return uri in self._data

    def claim(self, uri: URI) -> bool:
        with self._lock:
            if uri in self._data:
                return False
            self._data[uri] = LinkStatus.pending()
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def items(self) -> list[tuple[URI, LinkStatus]]:
        with self._lock:
            return list(self._data.items())

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class InMemoryQueue(FrontierQueue):
    """Insertion-ordered dict used as a unique FIFO."""

    def __init__(self, lock: threading.RLock) -> None:
        self._lock = lock
        self._data: dict[URI, None] = {}

    def add(self, uri: URI) -> bool:
        with self._lock:
            if uri in self._data:
                return False
            self._data[uri] = None
            return True

    def pop(self) -> URI | None:
        with self._lock:
            if not self._data:
                return None
            uri = next(iter(self._data))
            del self._data[uri]
            return uri

    def remove(self, uri: URI) -> None:
        with self._lock:
            self._data.pop(uri, None)

    def contains(self, uri: URI) -> bool:
        with self._lock:
            return uri in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __iter__(self) -> Iterator[URI]:
        with self._lock:
            snapshot = list(self._data)
        return iter(snapshot)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class InMemoryMultiMap(MultiMap):
    def __init__(self, lock: threading.RLock) -> None:
        self._lock = lock
        self._data: dict[URI, set[str]] = {}

    def get(self, key: URI) -> set[str]:
        with self._lock:
            return set(self._data.get(key, ()))

    def add(self, key: URI, value: str) -> None:
        with self._lock:
            self._data.setdefault(key, set()).add(value)

    def remove(self, key: URI) -> None:
        with self._lock:
            self._data.pop(key, None)

    def contains(self, key: URI) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def keys(self) -> list[URI]:
        with self._lock:
            return list(self._data)

    def items(self) -> list[tuple[URI, set[str]]]:
        with self._lock:
            return [(key, set(values)) for key, values in self._data.items()]

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class InMemoryBackend(StateBackend):
    """All four collections share one re-entrant lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.statuses = InMemoryStatusMap(self._lock)
        self.queue = InMemoryQueue(self._lock)
        self.reverse_links = InMemoryMultiMap(self._lock)
        self.invalid_links = InMemoryMultiMap(self._lock)

    def clear(self) -> None:
        with self._lock:
            super().clear()


__all__ = [
    "InMemoryBackend",
    "InMemoryMultiMap",
    "InMemoryQueue",
    "InMemoryStatusMap",
]
