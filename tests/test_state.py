from linkcrawl.backends import InMemoryBackend
from linkcrawl.config import RunConfig
from linkcrawl.state import StateStore
from linkcrawl.types import FetchResult, LinkStatus


ROOT = "http://localhost:8080/"
ABC = "http://localhost:8080/abc"
XYZ = "http://localhost:8080/xyz"
OTHER = "http://anotherhost/"


def _store(backend, **flags):
    return StateStore(backend, RunConfig(seeds=["http://localhost:8080"], **flags))


def _seeded_backend():
    backend = InMemoryBackend()
    backend.statuses.put(ROOT, LinkStatus.of(200))
    backend.statuses.put(ABC, LinkStatus.of(200))
    backend.statuses.put(XYZ, LinkStatus.of(200))
    backend.statuses.put(OTHER, LinkStatus.of(404))
    backend.reverse_links.add(ABC, ROOT)
    backend.reverse_links.add(XYZ, ROOT)
    backend.reverse_links.add(OTHER, XYZ)
    backend.invalid_links.add(ABC, "(invalid)")
    backend.queue.add("http://localhost:8080/leftover")
    return backend


def test_reset_clears_history_and_seeds_queue():
    backend = _seeded_backend()

    state = _store(backend, reset=True)

    assert len(state.statuses) == 0
    assert len(state.reverse_links) == 0
    assert len(state.invalid_links) == 0
    assert list(state.queue) == [ROOT]


def test_resume_keeps_state_and_skips_resolved_seed():
    backend = _seeded_backend()

    state = _store(backend)

    assert len(state.statuses) == 4
    assert list(state.queue) == ["http://localhost:8080/leftover"]
    assert len(state.invalid_links) == 1


def test_resume_requeues_pending_seed():
    backend = InMemoryBackend()
    backend.statuses.put(ROOT, LinkStatus.pending())

    state = _store(backend, resume=True)

    assert list(state.queue) == [ROOT]
    assert state.status_of(ROOT) is None


def test_recheck_requeues_referrers_and_invalid_contexts():
    backend = _seeded_backend()

    state = _store(backend, recheck=True)

    assert set(state.queue) == {XYZ, ABC}
    assert state.status_of(OTHER) is None
    assert state.status_of(XYZ) is None
    assert state.status_of(ABC) is None
    assert state.status_of(ROOT) == LinkStatus.of(200)
    assert len(state.invalid_links) == 0


def test_recheck_recovers_frozen_claims():
    backend = InMemoryBackend()
    backend.statuses.put(ROOT, LinkStatus.of(200))
    backend.statuses.put(ABC, LinkStatus.pending())
    backend.reverse_links.add(ABC, ROOT)

    state = _store(backend, recheck=True)

    assert list(state.queue) == [ROOT]
    assert state.status_of(ABC) is None


def test_recheck_only_errors_requeues_failing_uris():
    backend = _seeded_backend()

    state = _store(backend, recheck=True, recheck_only_errors=True)

    assert list(state.queue) == [OTHER]
    assert state.status_of(XYZ) == LinkStatus.of(200)
    assert len(state.invalid_links) == 1


def test_no_recheck_suppresses_recheck():
    backend = _seeded_backend()

    state = _store(backend, recheck=True, no_recheck=True)

    assert len(state.statuses) == 4
    assert list(state.queue) == ["http://localhost:8080/leftover"]


def test_add_records_status_links_and_invalids():
    state = _store(InMemoryBackend(), reset=True)
    assert state.next_uri() == ROOT
    assert state.claim(ROOT)

    state.add(FetchResult.of(ROOT, 200, {ROOT, ABC, OTHER}, {"(invalid)"}))

    assert state.status_of(ROOT) == LinkStatus.of(200)
    assert list(state.queue) == [ABC]
    assert state.referrers(OTHER) == {ROOT}
    assert state.referrers(ROOT) == {ROOT}
    assert state.invalid_links.get(ROOT) == {"(invalid)"}


def test_add_replaces_stale_invalid_links():
    state = _store(InMemoryBackend(), reset=True)
    state.add(FetchResult.of(ROOT, 200, set(), {"(old)"}))

    state.add(FetchResult.of(ROOT, 200, set(), set()))

    assert not state.invalid_links.contains(ROOT)


def test_add_failed_result_only_sets_status():
    state = _store(InMemoryBackend(), reset=True)
    state.invalid_links.add(ROOT, "(kept)")

    state.add(FetchResult.failed(ROOT))

    assert state.status_of(ROOT) == LinkStatus.failed()
    assert state.invalid_links.get(ROOT) == {"(kept)"}


def test_add_respects_follow_from_local():
    state = _store(InMemoryBackend(), reset=True, follow_from_local=True)
    state.next_uri()

    state.add(FetchResult.of(ROOT, 200, {OTHER}, set()))

    assert list(state.queue) == [OTHER]


def test_report_queries():
    state = _store(_seeded_backend())

    errors = state.error_entries()
    assert [(entry.uri, entry.status.to_int(), entry.referrers) for entry in errors] == [
        (OTHER, 404, [XYZ]),
    ]
    assert [(entry.context, entry.raw_links) for entry in state.invalid_entries()] == [
        (ABC, ["(invalid)"]),
    ]
    assert [uri for uri, _status in state.success_entries()] == [ROOT, ABC, XYZ]

    summary = state.summary()
    assert (summary.success, summary.errors, summary.invalid) == (3, 1, 1)
    assert state.num_checked() == 4
    assert state.num_queued() == 1
