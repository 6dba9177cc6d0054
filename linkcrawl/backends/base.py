"""Abstract persistent collections backing the crawl state."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator

from ..types import LinkStatus, URI


class StatusMap(ABC):
    """URI -> LinkStatus, with an atomic claim."""

    @abstractmethod
    def get(self, uri: URI) -> LinkStatus | None:
        ...

    @abstractmethod
    def put(self, uri: URI, status: LinkStatus) -> None:
        ...

    @abstractmethod
    def remove(self, uri: URI) -> None:
        ...

    @abstractmethod
    def contains(self, uri: URI) -> bool:
        ...

    @abstractmethod
    def claim(self, uri: URI) -> bool:
        """Set PENDING if no status exists; True when this call made the claim."""

    @abstractmethod
    def __len__(self) -> int:
        ...

    @abstractmethod
    def items(self) -> list[tuple[URI, LinkStatus]]:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    def __contains__(self, uri: object) -> bool:
        return isinstance(uri, str) and self.contains(uri)


class FrontierQueue(ABC):
    """Deduplicating FIFO-ish collection of URIs awaiting a fetch."""

    @abstractmethod
    def add(self, uri: URI) -> bool:
        """Enqueue unless already present; True when added."""

    @abstractmethod
    def pop(self) -> URI | None:
        """Remove and return the oldest URI, or None when empty."""

    @abstractmethod
    def remove(self, uri: URI) -> None:
        ...

    @abstractmethod
    def contains(self, uri: URI) -> bool:
        ...

    @abstractmethod
    def __len__(self) -> int:
        ...

    @abstractmethod
    def __iter__(self) -> Iterator[URI]:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    def empty(self) -> bool:
        return len(self) == 0

    def __contains__(self, uri: object) -> bool:
        return isinstance(uri, str) and self.contains(uri)


class MultiMap(ABC):
    """Key -> set of strings; each append is atomic per key."""

    @abstractmethod
    def get(self, key: URI) -> set[str]:
        ...

    @abstractmethod
    def add(self, key: URI, value: str) -> None:
        """Append `value` to the set at `key`, creating the entry if needed."""

    @abstractmethod
    def remove(self, key: URI) -> None:
        ...

    @abstractmethod
    def contains(self, key: URI) -> bool:
        ...

    @abstractmethod
    def __len__(self) -> int:
        ...

    @abstractmethod
    def keys(self) -> list[URI]:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    def items(self) -> list[tuple[URI, set[str]]]:
        return [(key, self.get(key)) for key in self.keys()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.contains(key)


class StateBackend(ABC):
    """The four collections of one crawl, plus connection lifecycle."""

    statuses: StatusMap
    queue: FrontierQueue
    reverse_links: MultiMap
    invalid_links: MultiMap

    def clear(self) -> None:
        self.queue.clear()
        self.statuses.clear()
        self.reverse_links.clear()
        self.invalid_links.clear()

    def close(self) -> None:
        return None

    def __enter__(self) -> "StateBackend":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = [
    "FrontierQueue",
    "MultiMap",
    "StateBackend",
    "StatusMap",
]
