import pytest

from lanbeacon.discovery.discovered_endpoint import DiscoveredEndpoint
from lanbeacon.discovery.endpoint_tracker import EndpointTracker


def make(address: str, port: int, payload: str, last_seen: float) -> DiscoveredEndpoint:
    return DiscoveredEndpoint(address, port, payload, last_seen)


@pytest.fixture
def tracker() -> EndpointTracker:
    return EndpointTracker(timeout_seconds=5.0)


def test_rejects_non_positive_timeout() -> None:
    with pytest.raises(ValueError):
        EndpointTracker(0)


def test_first_reply_is_a_change(tracker: EndpointTracker) -> None:
    snapshot = tracker.merge(make("10.0.0.1", 80, "hello", 0.0))
    assert snapshot is not None
    assert [e.content for e in snapshot] == [("10.0.0.1", 80, "hello")]
    assert tracker.snapshot == snapshot


def test_same_identity_is_merged_with_latest_payload(tracker: EndpointTracker) -> None:
    tracker.merge(make("10.0.0.1", 80, "old", 0.0))
    snapshot = tracker.merge(make("10.0.0.1", 80, "new", 1.0))
    assert snapshot is not None
    assert len(snapshot) == 1
    assert snapshot[0].payload == "new"
    assert snapshot[0].last_seen == 1.0
    assert len(tracker) == 1


def test_identical_reply_is_not_a_change_but_refreshes(tracker: EndpointTracker) -> None:
    tracker.merge(make("10.0.0.1", 80, "hello", 0.0))
    assert tracker.merge(make("10.0.0.1", 80, "hello", 3.0)) is None
    assert tracker.snapshot[0].last_seen == 3.0


def test_different_port_is_a_different_endpoint(tracker: EndpointTracker) -> None:
    tracker.merge(make("10.0.0.1", 80, "hello", 0.0))
    snapshot = tracker.merge(make("10.0.0.1", 81, "hello", 0.0))
    assert snapshot is not None
    assert len(snapshot) == 2


def test_prune_removes_stale_entries(tracker: EndpointTracker) -> None:
    tracker.merge(make("10.0.0.1", 80, "stale", 0.0))
    tracker.merge(make("10.0.0.2", 80, "fresh", 4.0))

    snapshot = tracker.prune(now=5.0)
    assert snapshot is not None
    assert [e.payload for e in snapshot] == ["fresh"]


def test_prune_boundary_is_inclusive(tracker: EndpointTracker) -> None:
    tracker.merge(make("10.0.0.1", 80, "a", 10.0))
    assert tracker.prune(now=14.999) is None
    assert tracker.prune(now=15.0) == ()


def test_refresh_keeps_entry_alive(tracker: EndpointTracker) -> None:
    tracker.merge(make("10.0.0.1", 80, "a", 0.0))
    tracker.merge(make("10.0.0.1", 80, "a", 4.0))
    assert tracker.prune(now=6.0) is None
    assert len(tracker.snapshot) == 1


def test_prune_without_change_does_not_notify(tracker: EndpointTracker) -> None:
    assert tracker.prune(now=100.0) is None


def test_clear(tracker: EndpointTracker) -> None:
    assert tracker.clear() is None
    tracker.merge(make("10.0.0.1", 80, "a", 0.0))
    assert tracker.clear() == ()
    assert tracker.snapshot == ()
