"""HTTP fetching, link resolution, and the bounded session pool."""

from __future__ import annotations

from collections import deque
import logging
import threading
from typing import Callable

import requests
import urllib3

from .config import RunConfig
from .constants import DEFAULT_TIMEOUT_SECONDS
from .extractor import Extractor
from .policy import ExtractionPolicy
from .types import FetchResult, URI
from .url import URIResolver


LOGGER = logging.getLogger(__name__)


def create_session(config: RunConfig) -> requests.Session:
    """Build one reusable HTTP client for the pool."""

    session = requests.Session()
    session.headers.update({"User-Agent": config.user_agent})
    if config.ignore_ssl_errors:
        session.verify = False
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
    return session


class ClientPool:
    """Fixed set of reusable sessions guarded by a counting semaphore.

    `acquire` blocks the caller until a session is free; at most `size`
    sessions are ever checked out at the same time.
    """

    def __init__(self, size: int, factory: Callable[[], requests.Session]) -> None:
        if size <= 0:
            raise ValueError("size must be > 0")

        self.size = size
        self._factory = factory
        self._slots = threading.Semaphore(size)
        self._lock = threading.Lock()
        self._idle: deque[requests.Session] = deque(factory() for _ in range(size))
        self._closed = False

    def acquire(self, timeout: float | None = None) -> requests.Session | None:
        """Check out a session, or return None when none frees up within `timeout`."""

        if not self._slots.acquire(timeout=timeout):
            return None

        with self._lock:
            if self._idle:
                return self._idle.pop()
        # The slot's previous session was discarded (closed by the timeout monitor).
        return self._factory()

    def release(self, session: requests.Session) -> None:
        with self._lock:
            if self._closed:
                session.close()
            else:
                self._idle.append(session)
        self._slots.release()

    def discard(self, session: requests.Session) -> None:
        """Close a checked-out session and free its slot for a fresh one."""

        try:
            session.close()
        finally:
            self._slots.release()

    def available(self) -> int:
        with self._lock:
            return len(self._idle)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            idle = list(self._idle)
            self._idle.clear()

        for session in idle:
            session.close()

    def __enter__(self) -> "ClientPool":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class Fetcher:
    """Fetch one URI and turn the response into a `FetchResult`.

    Never raises for transport problems: any `requests` error yields a
    failed result (status 0, no link sets).
    """

    def __init__(
        self,
        extractor: Extractor,
        resolver: URIResolver,
        extraction_policy: ExtractionPolicy,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.extractor = extractor
        self.resolver = resolver
        self.extraction_policy = extraction_policy
        self.timeout_seconds = timeout_seconds

    def fetch(self, client: requests.Session, uri: URI) -> FetchResult:
        try:
            with client.get(
                uri,
                timeout=self.timeout_seconds,
                stream=True,
                allow_redirects=False,
            ) as response:
                status_code = response.status_code
                LOGGER.debug("Got status %d at %s", status_code, uri)

                followable: set[URI] = set()
                invalid: set[str] = set()

                if self.extraction_policy.should_extract(uri):
                    raw_links = self.extractor.extract(
                        uri,
                        status_code,
                        response.headers,
                        lambda: response.content,
                    )
                    for raw_link in raw_links:
                        resolved = self.resolver.resolve(uri, raw_link)
                        if resolved.error is not None:
                            invalid.add(raw_link)
                        elif resolved.uri is not None:
                            followable.add(resolved.uri)

                return FetchResult.of(uri, status_code, followable, invalid)
        except (requests.RequestException, ValueError) as exc:
            LOGGER.debug("Fetch failed for %s: %s: %s", uri, exc.__class__.__name__, exc)
            return FetchResult.failed(uri)


__all__ = [
    "ClientPool",
    "Fetcher",
    "create_session",
]
