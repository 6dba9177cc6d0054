"""Thread-safe crawl statistics and periodic progress logging."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
import logging
import threading
import time
from typing import Any, Callable

from .constants import MONITOR_INTERVAL_SECONDS
from .types import CrawlStats, FetchResult


LOGGER = logging.getLogger(__name__)


class StatsCollector:
    """Collect and summarize crawl runtime statistics.

    Shared by the scheduler and the worker threads.
    """

    def __init__(self, base: CrawlStats | None = None) -> None:
        self._lock = threading.Lock()
        self._core = base or CrawlStats()
        self._status_code_counts: dict[str, int] = defaultdict(int)

    def record_dispatch(self) -> None:
        with self._lock:
            self._core.dispatched += 1

    def record_skipped_claim(self) -> None:
        with self._lock:
            self._core.skipped_claimed += 1

    def record_fetch(self, result: FetchResult) -> None:
        """Record one applied fetch result."""

        with self._lock:
            status = result.status
            if not result.ok:
                self._core.fetched_failed += 1
            elif status.is_error:
                self._core.fetched_error += 1
            else:
                self._core.fetched_ok += 1

            self._status_code_counts[str(result.status_code)] += 1
            self._core.links_discovered += len(result.followable_links or ())
            self._core.invalid_links += len(result.invalid_links or ())

    def record_cancelled(self) -> None:
        with self._lock:
            self._core.cancelled += 1

    def record_interrupted(self) -> None:
        with self._lock:
            self._core.interrupted += 1

    def record_task_error(self) -> None:
        with self._lock:
            self._core.task_errors += 1

    def finish(self) -> None:
        """Mark crawl as finished."""

        with self._lock:
            self._core.finish()

    def to_json(self) -> dict[str, Any]:
        """Return a JSON-serializable summary payload."""

        with self._lock:
            core = self._core.to_json()

            start = _parse_iso_utc(self._core.started_at)
            end = (
                _parse_iso_utc(self._core.finished_at)
                if self._core.finished_at
                else datetime.now(timezone.utc)
            )
            duration_seconds = max(0.0, (end - start).total_seconds())

            fetched_total = (
                self._core.fetched_ok + self._core.fetched_error + self._core.fetched_failed
            )

            return {
                **core,
                "duration_seconds": duration_seconds,
                "throughput": {
                    "fetched_per_second": (
                        fetched_total / duration_seconds if duration_seconds > 0 else 0.0
                    ),
                },
                "status_code_counts": dict(self._status_code_counts),
            }


def _parse_iso_utc(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class ProgressMonitor:
    """Daemon thread logging crawl progress at a fixed interval."""

    def __init__(
        self,
        checked: Callable[[], int],
        queued: Callable[[], int],
        interval_seconds: float = MONITOR_INTERVAL_SECONDS,
    ) -> None:
        self._checked = checked
        self._queued = queued
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._started = time.monotonic()

    def log(self) -> None:
        elapsed = int(time.monotonic() - self._started)
        processed = self._checked()
        LOGGER.info(
            "processed: %d, to check: %d; (run time %ds, avg %d/s)",
            processed,
            self._queued(),
            elapsed,
            processed // (elapsed if elapsed > 0 else 1),
        )

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.log()
            except Exception:
                LOGGER.exception("Progress logging failed")
            self._stop.wait(self.interval_seconds)

    def start(self) -> None:
        self._started = time.monotonic()
        self._thread = threading.Thread(target=self._run, name="log-monitor", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval_seconds)
            self._thread = None

    def __enter__(self) -> "ProgressMonitor":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()


__all__ = ["ProgressMonitor", "StatsCollector"]
