"""Core type definitions for the link checker.

This module is intentionally dependency-light so other modules can import
shared records without introducing cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable


# Absolute URI in canonical form (fragment stripped); the key everywhere.
URI = str

JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string for reports."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class StatusKind(str, Enum):
    """Three-way classification of a URI's status entry."""

    PENDING = "pending"
    FAILED = "failed"
    CODE = "code"


class BootstrapMode(str, Enum):
    """How a state store treats persisted progress on construction."""

    RESET = "reset"
    RESUME = "resume"
    RECHECK = "recheck"


_PENDING_INT = -1
_FAILED_INT = 0


@dataclass(frozen=True, slots=True)
class LinkStatus:
    """Tagged status value: claimed, network failure, or an HTTP code."""

    kind: StatusKind
    code: int | None = None

    @classmethod
    def pending(cls) -> "LinkStatus":
        return _PENDING

    @classmethod
    def failed(cls) -> "LinkStatus":
        return _FAILED

    @classmethod
    def of(cls, code: int) -> "LinkStatus":
        if code <= 0:
            raise ValueError(f"HTTP status code must be > 0, got {code!r}")
        return cls(StatusKind.CODE, int(code))

    @classmethod
    def from_int(cls, value: int) -> "LinkStatus":
        """Decode the persisted integer form (-1 pending, 0 failed)."""

        value = int(value)
        if value == _PENDING_INT:
            return _PENDING
        if value == _FAILED_INT:
            return _FAILED
        return cls.of(value)

    def to_int(self) -> int:
        if self.kind == StatusKind.PENDING:
            return _PENDING_INT
        if self.kind == StatusKind.FAILED:
            return _FAILED_INT
        assert self.code is not None
        return self.code

    @property
    def is_pending(self) -> bool:
        return self.kind == StatusKind.PENDING

    @property
    def is_error(self) -> bool:
        """Pending, failed, or an HTTP code >= 400."""

        if self.kind != StatusKind.CODE:
            return True
        return self.code is not None and self.code >= 400

    @property
    def is_success(self) -> bool:
        return not self.is_error

    def __str__(self) -> str:
        return str(self.to_int())


_PENDING = LinkStatus(StatusKind.PENDING)
_FAILED = LinkStatus(StatusKind.FAILED)


@dataclass(frozen=True, slots=True)
class InvalidLink:
    """A raw href that could not be canonicalized against its context."""

    context: URI
    raw_link: str
    reason: str

    def to_json(self) -> JSONDict:
        return {
            "context": self.context,
            "raw_link": self.raw_link,
            "reason": self.reason,
        }


@dataclass(frozen=True, slots=True)
class ResolveResult:
    """Outcome of resolving one raw link.

    Exactly one of three shapes: a followable `uri`, nothing (ignorable),
    or an `error`.
    """

    uri: URI | None = None
    error: InvalidLink | None = None

    @classmethod
    def followable(cls, uri: URI) -> "ResolveResult":
        return cls(uri=uri)

    @classmethod
    def ignored(cls) -> "ResolveResult":
        return cls()

    @classmethod
    def invalid(cls, context: URI, raw_link: str, reason: str) -> "ResolveResult":
        return cls(error=InvalidLink(context=context, raw_link=raw_link, reason=reason))

    @property
    def is_invalid(self) -> bool:
        return self.error is not None

    @property
    def is_ignored(self) -> bool:
        return self.uri is None and self.error is None


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Normalized outcome of fetching one URI.

    `status_code` is 0 for transport failures, in which case both link
    sets are None.
    """

    uri: URI
    status_code: int
    followable_links: frozenset[URI] | None = None
    invalid_links: frozenset[str] | None = None

    @classmethod
    def failed(cls, uri: URI) -> "FetchResult":
        return cls(uri=uri, status_code=0)

    @classmethod
    def of(
        cls,
        uri: URI,
        status_code: int,
        followable_links: Iterable[URI] | None = None,
        invalid_links: Iterable[str] | None = None,
    ) -> "FetchResult":
        return cls(
            uri=uri,
            status_code=status_code,
            followable_links=None if followable_links is None else frozenset(followable_links),
            invalid_links=None if invalid_links is None else frozenset(invalid_links),
        )

    @property
    def ok(self) -> bool:
        return self.status_code > 0

    @property
    def status(self) -> LinkStatus:
        return LinkStatus.from_int(self.status_code)


@dataclass(frozen=True, slots=True)
class ErrorEntry:
    """One erroring URI with the pages that linked to it."""

    uri: URI
    status: LinkStatus
    referrers: list[URI] = field(default_factory=list)

    def to_json(self) -> JSONDict:
        return {
            "uri": self.uri,
            "status": self.status.to_int(),
            "referrers": list(self.referrers),
        }


@dataclass(frozen=True, slots=True)
class InvalidEntry:
    """Raw invalid links recorded against one referring context."""

    context: URI
    raw_links: list[str] = field(default_factory=list)

    def to_json(self) -> JSONDict:
        return {
            "context": self.context,
            "raw_links": list(self.raw_links),
        }


@dataclass(frozen=True, slots=True)
class ReportSummary:
    """Aggregate counts over the current state."""

    success: int
    errors: int
    invalid: int

    @property
    def total(self) -> int:
        return self.success + self.errors

    def to_json(self) -> JSONDict:
        return {
            "success": self.success,
            "errors": self.errors,
            "invalid": self.invalid,
            "total": self.total,
        }


@dataclass(slots=True)
class CrawlStats:
    """Simple mutable counters used for crawl summary reporting."""

    dispatched: int = 0
    fetched_ok: int = 0
    fetched_error: int = 0
    fetched_failed: int = 0
    skipped_claimed: int = 0
    links_discovered: int = 0
    invalid_links: int = 0
    cancelled: int = 0
    interrupted: int = 0
    task_errors: int = 0

    started_at: str = field(default_factory=utc_now_iso)
    finished_at: str | None = None

    def finish(self) -> None:
        self.finished_at = utc_now_iso()

    def to_json(self) -> JSONDict:
        return {
            "dispatched": self.dispatched,
            "fetched_ok": self.fetched_ok,
            "fetched_error": self.fetched_error,
            "fetched_failed": self.fetched_failed,
            "skipped_claimed": self.skipped_claimed,
            "links_discovered": self.links_discovered,
            "invalid_links": self.invalid_links,
            "cancelled": self.cancelled,
            "interrupted": self.interrupted,
            "task_errors": self.task_errors,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


__all__ = [
    "BootstrapMode",
    "CrawlStats",
    "ErrorEntry",
    "FetchResult",
    "InvalidEntry",
    "InvalidLink",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "LinkStatus",
    "ReportSummary",
    "ResolveResult",
    "StatusKind",
    "URI",
    "utc_now_iso",
]
