import threading

import requests
from requests.structures import CaseInsensitiveDict

from linkcrawl.config import RunConfig
from linkcrawl.extractor import HtmlExtractor
from linkcrawl.fetcher import ClientPool, Fetcher, create_session
from linkcrawl.policy import ExtractionPolicy
from linkcrawl.url import URIResolver


class FakeResponse:
    def __init__(self, status_code, headers=None, content=b""):
        self.status_code = status_code
        self.headers = CaseInsensitiveDict(headers or {})
        self.content = content
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True
        return False


class FakeSession:
    def __init__(self, responses=None, error=None):
        self.responses = responses or {}
        self.error = error
        self.calls = []
        self.closed = False

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.responses[url]

    def close(self):
        self.closed = True


def _fetcher(local_hosts=("h",), no_follow=False):
    return Fetcher(
        HtmlExtractor(),
        URIResolver(),
        ExtractionPolicy.build(local_hosts=local_hosts, no_follow=no_follow),
        timeout_seconds=7.0,
    )


PAGE = b"""
<a href="/abc">a</a>
<a href="sub/page#frag">b</a>
<a href="mailto:someone@example.org">mail</a>
<a href="(invalid link)">bad</a>
<a href="http://other/x">external</a>
"""


def test_fetch_classifies_links():
    session = FakeSession({"http://h/": FakeResponse(200, {"Content-Type": "text/html"}, PAGE)})

    result = _fetcher().fetch(session, "http://h/")

    assert result.uri == "http://h/"
    assert result.status_code == 200
    assert result.followable_links == {"http://h/abc", "http://h/sub/page", "http://other/x"}
    assert result.invalid_links == {"(invalid link)"}


def test_fetch_does_not_follow_redirects_in_transport():
    session = FakeSession({"http://h/old": FakeResponse(301, {"Location": "/new"})})

    result = _fetcher().fetch(session, "http://h/old")

    _url, kwargs = session.calls[0]
    assert kwargs["allow_redirects"] is False
    assert kwargs["timeout"] == 7.0
    assert result.status_code == 301
    assert result.followable_links == {"http://h/new"}


def test_fetch_skips_extraction_for_non_local_context():
    session = FakeSession({"http://other/": FakeResponse(200, {"Content-Type": "text/html"}, PAGE)})

    result = _fetcher().fetch(session, "http://other/")

    assert result.status_code == 200
    assert result.followable_links == frozenset()
    assert result.invalid_links == frozenset()


def test_fetch_skips_extraction_with_no_follow():
    session = FakeSession({"http://h/": FakeResponse(200, {"Content-Type": "text/html"}, PAGE)})

    result = _fetcher(no_follow=True).fetch(session, "http://h/")

    assert result.followable_links == frozenset()


def test_transport_error_yields_failed_result():
    session = FakeSession(error=requests.ConnectionError("refused"))

    result = _fetcher().fetch(session, "http://h/")

    assert result.status_code == 0
    assert result.followable_links is None
    assert result.invalid_links is None
    assert not result.ok


def test_value_error_yields_failed_result():
    session = FakeSession(error=ValueError("bad url"))

    assert _fetcher().fetch(session, "http://h/").status_code == 0


def test_client_pool_bounds_checkouts():
    pool = ClientPool(2, FakeSession)

    first = pool.acquire(timeout=0.1)
    second = pool.acquire(timeout=0.1)

    assert first is not None and second is not None
    assert pool.acquire(timeout=0.05) is None

    pool.release(first)
    assert pool.acquire(timeout=0.1) is first


def test_client_pool_discard_replaces_session():
    pool = ClientPool(1, FakeSession)
    session = pool.acquire(timeout=0.1)

    pool.discard(session)
    replacement = pool.acquire(timeout=0.1)

    assert session.closed
    assert replacement is not None and replacement is not session


def test_client_pool_release_unblocks_waiter():
    pool = ClientPool(1, FakeSession)
    held = pool.acquire(timeout=0.1)
    got = []

    waiter = threading.Thread(target=lambda: got.append(pool.acquire(timeout=2.0)))
    waiter.start()
    pool.release(held)
    waiter.join(timeout=2.0)

    assert got == [held]


def test_client_pool_close_closes_idle_sessions():
    pool = ClientPool(2, FakeSession)
    held = pool.acquire(timeout=0.1)

    pool.close()
    pool.release(held)

    assert held.closed
    assert pool.available() == 0


def test_create_session_applies_config():
    config = RunConfig(seeds=["http://h"], user_agent="checker/1.0", ignore_ssl_errors=True)

    session = create_session(config)
    try:
        assert session.headers["User-Agent"] == "checker/1.0"
        assert session.verify is False
    finally:
        session.close()
