import random

from lanbeacon.discovery.discovered_endpoint import DiscoveredEndpoint
from lanbeacon.discovery.snapshot import (
    build_snapshot,
    snapshot_content,
    snapshots_equal,
    sort_key,
)


def make(address: str, port: int, payload: str, last_seen: float = 0.0) -> DiscoveredEndpoint:
    return DiscoveredEndpoint(address, port, payload, last_seen)


class TestDiscoveredEndpoint:
    def test_equality_uses_address_and_port_only(self) -> None:
        first = make("10.0.0.1", 80, "a", 1.0)
        second = make("10.0.0.1", 80, "b", 2.0)
        assert first == second
        assert hash(first) == hash(second)
        assert first != make("10.0.0.1", 81, "a", 1.0)
        assert first != make("10.0.0.2", 80, "a", 1.0)

    def test_content_excludes_timestamp(self) -> None:
        assert make("10.0.0.1", 80, "a", 5.0).content == ("10.0.0.1", 80, "a")

    def test_not_equal_to_other_types(self) -> None:
        assert make("10.0.0.1", 80, "a") != ("10.0.0.1", 80)


class TestOrdering:
    def test_sorted_by_payload_then_address_then_port(self) -> None:
        endpoints = [
            make("10.0.0.2", 1, "b"),
            make("10.0.0.10", 1, "a"),
            make("10.0.0.9", 2, "a"),
            make("10.0.0.9", 1, "a"),
        ]
        snapshot = build_snapshot(endpoints)
        assert [e.content for e in snapshot] == [
            ("10.0.0.9", 1, "a"),
            ("10.0.0.9", 2, "a"),
            ("10.0.0.10", 1, "a"),
            ("10.0.0.2", 1, "b"),
        ]

    def test_addresses_compare_numerically(self) -> None:
        assert sort_key(make("10.0.0.9", 1, "x")) < sort_key(make("10.0.0.10", 1, "x"))

    def test_ordering_is_deterministic(self) -> None:
        endpoints = [
            make(f"192.168.1.{i % 7}", 1000 + i, f"p{i % 3}") for i in range(20)
        ]
        expected = build_snapshot(endpoints)
        rng = random.Random(1234)
        for _ in range(10):
            shuffled = list(endpoints)
            rng.shuffle(shuffled)
            assert snapshot_content(build_snapshot(shuffled)) == snapshot_content(expected)

    def test_snapshot_is_immutable_tuple(self) -> None:
        assert isinstance(build_snapshot([make("10.0.0.1", 1, "a")]), tuple)

    def test_non_ip_address_sorts_after_ips(self) -> None:
        snapshot = build_snapshot(
            [make("host.local", 1, "a"), make("10.0.0.1", 1, "a")]
        )
        assert [e.address for e in snapshot] == ["10.0.0.1", "host.local"]


class TestEquality:
    def test_timestamps_do_not_matter(self) -> None:
        first = build_snapshot([make("10.0.0.1", 1, "a", 1.0)])
        second = build_snapshot([make("10.0.0.1", 1, "a", 9.0)])
        assert snapshots_equal(first, second)

    def test_payload_change_matters(self) -> None:
        first = build_snapshot([make("10.0.0.1", 1, "a")])
        second = build_snapshot([make("10.0.0.1", 1, "b")])
        assert not snapshots_equal(first, second)

    def test_length_change_matters(self) -> None:
        first = build_snapshot([make("10.0.0.1", 1, "a")])
        assert not snapshots_equal(first, ())
        assert not snapshots_equal((), first)
