"""Worker-pool scheduler driving fetches from the state store's queue."""

from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
import logging
import threading
import time
from typing import Any, Protocol

import requests

from .config import RunConfig
from .constants import CLIENT_ACQUIRE_POLL_SECONDS, DRAIN_POLL_SECONDS
from .fetcher import ClientPool, create_session
from .state import StateStore
from .stats import ProgressMonitor, StatsCollector
from .types import FetchResult, URI


LOGGER = logging.getLogger(__name__)


class FetchFn(Protocol):
    def fetch(self, client: requests.Session, uri: URI) -> FetchResult:
        ...


@dataclass(slots=True)
class _Task:
    """Bookkeeping for one submitted fetch."""

    uri: URI
    client: requests.Session
    submitted_at: float
    running_since: float | None = None
    cancel: threading.Event = field(default_factory=threading.Event)
    _lock: threading.Lock = field(default_factory=threading.Lock)
    _settled: bool = False

    def settle(self) -> bool:
        """True exactly once: whoever settles returns the client to the pool."""

        with self._lock:
            if self._settled:
                return False
            self._settled = True
            return True


class Orchestrator:
    """Claim queued URIs and fetch each at most once per run.

    One scheduler loop (the caller's thread) pops URIs, claims them, and
    blocks on the client pool before submitting to a fixed worker pool, so
    in-flight fetches never exceed the pool size. Tasks running longer than
    the timeout are cancelled; tasks running longer than twice the timeout
    have their session closed and are abandoned. A cancelled URI keeps its
    pending status until a later recheck.
    """

    def __init__(
        self,
        config: RunConfig,
        state: StateStore,
        fetcher: FetchFn,
        *,
        clients: ClientPool | None = None,
        stats: StatsCollector | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.config = config
        self.state = state
        self.fetcher = fetcher
        self.threads = config.threads
        self.delay_seconds = config.delay_seconds
        self.timeout_seconds = timeout_seconds or config.timeout_seconds

        self.clients = clients or ClientPool(config.threads, lambda: create_session(config))
        self.stats = stats or StatsCollector()
        self._owns_clients = clients is None

        self._tasks: dict[Future[None], _Task] = {}
        self._abandoned = False

    def run(self) -> dict[str, Any]:
        """Crawl until the queue is empty and no task is outstanding."""

        LOGGER.info(
            "Starting crawl: %d queued, %d checked, %d threads",
            self.state.num_queued(),
            self.state.num_checked(),
            self.threads,
        )

        executor = ThreadPoolExecutor(max_workers=self.threads, thread_name_prefix="http-client")
        monitor = ProgressMonitor(self.state.num_checked, self.state.num_queued)
        monitor.start()
        try:
            self._schedule(executor)
        finally:
            monitor.stop()
            executor.shutdown(wait=not self._abandoned, cancel_futures=True)
            if self._owns_clients:
                self.clients.close()
            self.stats.finish()

        summary = self.stats.to_json()
        LOGGER.info(
            "Crawl finished: %d dispatched, %d checked, %d cancelled, %d interrupted",
            summary["dispatched"],
            self.state.num_checked(),
            summary["cancelled"],
            summary["interrupted"],
        )
        return summary

    def _schedule(self, executor: ThreadPoolExecutor) -> None:
        while True:
            uri = self.state.next_uri()
            if uri is not None:
                self._dispatch(executor, uri)
                continue

            self._reap()
            if not self._tasks:
                if self.state.queue_empty():
                    return
                continue

            LOGGER.debug("Queue drained, waiting on %d tasks", len(self._tasks))
            wait(list(self._tasks), timeout=DRAIN_POLL_SECONDS, return_when=FIRST_COMPLETED)

    def _dispatch(self, executor: ThreadPoolExecutor, uri: URI) -> None:
        if not self.state.claim(uri):
            LOGGER.debug("Skipping %s: already claimed or resolved", uri)
            self.stats.record_skipped_claim()
            return

        client = self._acquire_client()
        task = _Task(uri=uri, client=client, submitted_at=time.monotonic())
        future = executor.submit(self._execute, task)
        self._tasks[future] = task
        self.stats.record_dispatch()

    def _acquire_client(self) -> requests.Session:
        while True:
            client = self.clients.acquire(timeout=CLIENT_ACQUIRE_POLL_SECONDS)
            if client is not None:
                return client
            self._reap()

    def _execute(self, task: _Task) -> None:
        task.running_since = time.monotonic()
        uri = task.uri
        try:
            if task.cancel.is_set():
                return

            status = self.state.status_of(uri)
            if status is None or not status.is_pending:
                LOGGER.debug("Not fetching %s: resolved as %s by another task", uri, status)
                return

            if self.delay_seconds > 0 and task.cancel.wait(self.delay_seconds):
                return

            LOGGER.debug("OPENING %s", uri)
            try:
                result = self.fetcher.fetch(task.client, uri)
            except Exception as exc:
                LOGGER.warning(
                    "Error opening url %s (%s: %s); referred to by (at least) %s",
                    uri,
                    exc.__class__.__name__,
                    exc,
                    sorted(self.state.referrers(uri)),
                    exc_info=True,
                )
                self.stats.record_task_error()
                result = FetchResult.failed(uri)

            if task.cancel.is_set():
                LOGGER.debug("Discarding result for cancelled %s", uri)
                return

            self.state.add(result)
            self.stats.record_fetch(result)
        finally:
            if task.settle():
                self.clients.release(task.client)

    def _reap(self) -> None:
        """Drop finished tasks and cancel or abandon overdue ones.

        A task still waiting for a worker is timed from submission and is
        cancelled outright; a running task is timed from when its worker
        picked it up.
        """

        now = time.monotonic()
        for future, task in list(self._tasks.items()):
            if future.done():
                del self._tasks[future]
                if not future.cancelled() and future.exception() is not None:
                    LOGGER.error(
                        "Task for %s failed",
                        task.uri,
                        exc_info=future.exception(),
                    )
                continue

            if task.running_since is None:
                if now - task.submitted_at >= self.timeout_seconds and future.cancel():
                    LOGGER.warning("Cancelling %s before it started", task.uri)
                    task.cancel.set()
                    del self._tasks[future]
                    self.stats.record_cancelled()
                    if task.settle():
                        self.clients.release(task.client)
                continue

            elapsed = now - task.running_since
            if elapsed >= self.timeout_seconds and not task.cancel.is_set():
                LOGGER.warning("Cancelling %s after %.1fs", task.uri, elapsed)
                task.cancel.set()
                self.stats.record_cancelled()
            if elapsed >= 2 * self.timeout_seconds:
                LOGGER.warning("Interrupting %s after %.1fs", task.uri, elapsed)
                del self._tasks[future]
                self._abandoned = True
                self.stats.record_interrupted()
                if task.settle():
                    self.clients.discard(task.client)


__all__ = ["Orchestrator"]
