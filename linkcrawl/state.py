"""Crawl state: status, frontier, reverse links, invalid links.

`StateStore` wraps a `StateBackend` and owns the bootstrap policy that runs
once at construction (reset / resume / recheck) plus the single runtime
mutation entry point, `add`.
"""

from __future__ import annotations

import logging

from .backends.base import StateBackend
from .config import RunConfig
from .policy import FollowPolicy
from .types import (
    BootstrapMode,
    ErrorEntry,
    FetchResult,
    InvalidEntry,
    LinkStatus,
    ReportSummary,
    URI,
)


LOGGER = logging.getLogger(__name__)


class StateStore:
    """Queue/status/provenance bookkeeping for one crawl run."""

    def __init__(
        self,
        backend: StateBackend,
        config: RunConfig,
        follow_policy: FollowPolicy | None = None,
    ) -> None:
        self.backend = backend
        self.config = config
        self.follow_policy = follow_policy or config.follow_policy()

        self.statuses = backend.statuses
        self.queue = backend.queue
        self.reverse_links = backend.reverse_links
        self.invalid_links = backend.invalid_links

        self._bootstrap(config.bootstrap_mode)

    def _bootstrap(self, mode: BootstrapMode) -> None:
        start: set[URI] = set()

        if mode == BootstrapMode.RESET:
            self.backend.clear()
            start.update(self.config.seeds)
        elif mode == BootstrapMode.RECHECK:
            start.update(self._collect_recheck())
            start.update(self._unresolved_seeds())
        else:
            start.update(self._unresolved_seeds())

        for uri in sorted(start):
            self.statuses.remove(uri)
            self.queue.add(uri)

        LOGGER.info(
            "Bootstrap %s: %d queued, %d statuses, %d invalid contexts",
            mode.value,
            len(self.queue),
            len(self.statuses),
            len(self.invalid_links),
        )

    def _unresolved_seeds(self) -> list[URI]:
        unresolved: list[URI] = []
        for seed in self.config.seeds:
            status = self.statuses.get(seed)
            if status is None or status.is_pending:
                unresolved.append(seed)
        return unresolved

    def _collect_recheck(self) -> set[URI]:
        """Clear the queue and drop error statuses; return the URIs to refetch."""

        self.queue.clear()
        start: set[URI] = set()
        errored: list[URI] = []

        for uri, status in self.statuses.items():
            if not status.is_error:
                continue
            errored.append(uri)
            if self.config.recheck_only_errors:
                start.add(uri)
                continue
            for referrer in self.reverse_links.get(uri):
                LOGGER.info("Link [%s %s] <-- %s [RECHECK]", status, uri, referrer)
                start.add(referrer)

        for uri in errored:
            self.statuses.remove(uri)

        if not self.config.recheck_only_errors:
            for context, raw_links in self.invalid_links.items():
                if raw_links:
                    start.add(context)
            self.invalid_links.clear()

        return start

    # -- runtime ---------------------------------------------------------

    def next_uri(self) -> URI | None:
        return self.queue.pop()

    def claim(self, uri: URI) -> bool:
        """Mark `uri` in flight; False when it already has a status."""

        return self.statuses.claim(uri)

    def status_of(self, uri: URI) -> LinkStatus | None:
        return self.statuses.get(uri)

    def queue_empty(self) -> bool:
        return self.queue.empty()

    def referrers(self, uri: URI) -> set[URI]:
        return self.reverse_links.get(uri)

    def add(self, result: FetchResult) -> None:
        """Apply one fetch outcome and enqueue newly discovered followable links."""

        context = result.uri
        self.statuses.put(context, result.status)
        if not result.ok:
            return

        self.invalid_links.remove(context)
        for raw_link in result.invalid_links or ():
            self.invalid_links.add(context, raw_link)

        for uri in result.followable_links or ():
            if self.follow_policy.should_follow(context, uri) and not self.statuses.contains(uri):
                self.queue.add(uri)
            self.reverse_links.add(uri, context)

    # -- counters --------------------------------------------------------

    def num_checked(self) -> int:
        return len(self.statuses)

    def num_queued(self) -> int:
        return len(self.queue)

    # -- report queries --------------------------------------------------

    def error_entries(self) -> list[ErrorEntry]:
        entries = [
            ErrorEntry(uri=uri, status=status, referrers=sorted(self.reverse_links.get(uri)))
            for uri, status in self.statuses.items()
            if status.is_error
        ]
        return sorted(entries, key=lambda entry: entry.uri)

    def success_entries(self) -> list[tuple[URI, LinkStatus]]:
        return sorted(
            (item for item in self.statuses.items() if item[1].is_success),
            key=lambda item: item[0],
        )

    def invalid_entries(self) -> list[InvalidEntry]:
        return [
            InvalidEntry(context=context, raw_links=sorted(raw_links))
            for context, raw_links in sorted(self.invalid_links.items())
        ]

    def summary(self) -> ReportSummary:
        success = 0
        errors = 0
        for _uri, status in self.statuses.items():
            if status.is_error:
                errors += 1
            else:
                success += 1
        return ReportSummary(success=success, errors=errors, invalid=len(self.invalid_links))


__all__ = ["StateStore"]
