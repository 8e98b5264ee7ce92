import queue
import socket
import threading
import time
from typing import List

import pytest

from lanbeacon.config.discovery_config import DiscoveryConfig
from lanbeacon.discovery.discovered_endpoint import DiscoveredEndpoint
from lanbeacon.discovery.prober import Prober
from lanbeacon.discovery.snapshot import Snapshot
from lanbeacon.errors import BindError
from lanbeacon.wire.messages import build_query, build_reply

SERVICE = "svc.test"


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestProber:
    @pytest.fixture(autouse=True)
    def _prober(self, discovery_port: int):  # type: ignore[no-untyped-def]
        # Stands in for the advertisers: receives the queries and replies.
        self.peer = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.peer.settimeout(2.0)
        self.peer.bind(("127.0.0.1", discovery_port))

        self.clock = FakeClock()
        self.config = DiscoveryConfig(
            discovery_port=discovery_port,
            probe_interval_seconds=0.05,
            endpoint_timeout_seconds=5.0,
            broadcast_addresses=("127.0.0.1",),
        )
        self.prober = Prober(SERVICE, config=self.config, clock=self.clock)
        self.snapshots: "queue.Queue[Snapshot]" = queue.Queue()
        self.prober.subscribe(self.snapshots.put)
        yield
        self.prober.dispose()
        self.peer.close()
        self.prober.watcher.check_for_exception()

    def _reply(self, port: int, payload: str, service_type: str = SERVICE) -> None:
        self._send(build_reply(service_type, port, payload))

    def _send(self, data: bytes) -> None:
        address = self.prober.address
        assert address is not None
        self.peer.sendto(data, ("127.0.0.1", address[1]))

    def _next_snapshot(self) -> Snapshot:
        return self.snapshots.get(timeout=2.0)

    def _assert_no_snapshot(self, wait: float = 0.2) -> None:
        with pytest.raises(queue.Empty):
            self.snapshots.get(timeout=wait)

    def test_initial_state(self) -> None:
        assert not self.prober.is_running
        assert not self.prober.is_disposed
        assert self.prober.snapshot == ()
        assert self.prober.service_type == SERVICE
        assert self.prober.config is self.config

    @pytest.mark.timeout(10)
    def test_start_broadcasts_queries_repeatedly(self) -> None:
        self.prober.start()

        for _ in range(3):
            data, addr = self.peer.recvfrom(1024)
            assert data == build_query(SERVICE)
            assert addr[1] == self.prober.address[1]  # type: ignore[index]

    @pytest.mark.timeout(10)
    def test_no_queries_before_start(self) -> None:
        self.peer.settimeout(0.2)
        with pytest.raises(socket.timeout):
            self.peer.recvfrom(1024)

    @pytest.mark.timeout(10)
    def test_reply_adds_endpoint(self) -> None:
        self.prober.start()
        self._reply(9000, "hi")

        snapshot = self._next_snapshot()
        assert len(snapshot) == 1
        endpoint = snapshot[0]
        assert endpoint.address == "127.0.0.1"
        assert endpoint.port == 9000
        assert endpoint.payload == "hi"
        assert endpoint.last_seen == 100.0
        assert self.prober.snapshot == snapshot

    @pytest.mark.timeout(10)
    def test_identical_reply_refreshes_without_notifying(self) -> None:
        self.prober.start()
        self._reply(9000, "hi")
        self._next_snapshot()

        self.clock.now = 102.0
        self._reply(9000, "hi")
        self._reply(9000, "changed")

        # The repeat is absorbed; the payload change is reported.
        snapshot = self._next_snapshot()
        assert [e.payload for e in snapshot] == ["changed"]
        assert snapshot[0].last_seen == 102.0
        self._assert_no_snapshot()

    @pytest.mark.timeout(10)
    def test_same_address_and_port_is_one_endpoint(self) -> None:
        self.prober.start()
        self._reply(9000, "a")
        self._reply(9000, "b")
        self._reply(9001, "b")

        self._next_snapshot()
        self._next_snapshot()
        snapshot = self._next_snapshot()
        assert [(e.port, e.payload) for e in snapshot] == [(9000, "b"), (9001, "b")]

    @pytest.mark.timeout(10)
    def test_snapshot_is_sorted_by_payload(self) -> None:
        self.prober.start()
        self._reply(9001, "zeta")
        self._reply(9002, "alpha")

        self._next_snapshot()
        snapshot = self._next_snapshot()
        assert [e.payload for e in snapshot] == ["alpha", "zeta"]

    @pytest.mark.timeout(10)
    def test_foreign_and_malformed_datagrams_are_ignored(self) -> None:
        self.prober.start()
        self._reply(9000, "other", service_type="svc.other")
        # Right prefix, but no port: a query, not a reply.
        self._send(build_query(SERVICE))
        self._send(build_reply(SERVICE, 9000, "x")[:-1])
        self._send(b"\xff")
        self._reply(9001, "valid")

        snapshot = self._next_snapshot()
        assert [(e.port, e.payload) for e in snapshot] == [(9001, "valid")]

    @pytest.mark.timeout(10)
    def test_replies_are_ignored_while_stopped(self) -> None:
        self._reply(9000, "early")
        time.sleep(0.1)
        self.prober.start()
        self._reply(9001, "late")

        snapshot = self._next_snapshot()
        assert [e.port for e in snapshot] == [9001]

    @pytest.mark.timeout(10)
    def test_stale_endpoints_are_pruned(self) -> None:
        self.prober.start()
        self._reply(9000, "hi")
        self._next_snapshot()

        # Still fresh: several prune passes go by without a change.
        self.clock.now = 104.9
        self._assert_no_snapshot(0.3)

        self.clock.now = 105.0
        assert self._next_snapshot() == ()
        assert self.prober.snapshot == ()
        assert self.prober.is_running

    @pytest.mark.timeout(10)
    def test_stop_clears_snapshot_and_notifies_once(self) -> None:
        self.prober.start()
        self._reply(9000, "hi")
        self._next_snapshot()

        self.prober.stop()
        assert not self.prober.is_running
        assert self.prober.snapshot == ()
        assert self._next_snapshot() == ()

        self.prober.stop()
        self._assert_no_snapshot()

    @pytest.mark.timeout(10)
    def test_stop_with_empty_snapshot_does_not_notify(self) -> None:
        self.prober.start()
        self.prober.stop()
        self._assert_no_snapshot()

    @pytest.mark.timeout(10)
    def test_restart_discovers_again(self) -> None:
        self.prober.start()
        self.prober.stop()
        self.prober.start()
        self.prober.start()

        self.peer.recvfrom(1024)
        self._reply(9000, "back")
        assert [e.payload for e in self._next_snapshot()] == ["back"]

    @pytest.mark.timeout(10)
    def test_callbacks_run_on_background_thread(self) -> None:
        threads: List[threading.Thread] = []
        # Recorded before the queue sees the same snapshot.
        self.prober.unsubscribe(self.snapshots.put)
        self.prober.subscribe(lambda _s: threads.append(threading.current_thread()))
        self.prober.subscribe(self.snapshots.put)

        self.prober.start()
        self._reply(9000, "hi")
        self._next_snapshot()
        self.prober.stop()
        self._next_snapshot()

        assert len(threads) == 2
        assert threading.current_thread() not in threads

    @pytest.mark.timeout(10)
    def test_failing_subscriber_does_not_block_others(self) -> None:
        def broken(_snapshot: Snapshot) -> None:
            raise RuntimeError("subscriber failure")

        self.prober.unsubscribe(self.snapshots.put)
        self.prober.subscribe(broken)
        self.prober.subscribe(self.snapshots.put)

        self.prober.start()
        self._reply(9000, "hi")
        assert len(self._next_snapshot()) == 1

    @pytest.mark.timeout(10)
    def test_unsubscribed_callback_is_not_called(self) -> None:
        self.prober.unsubscribe(self.snapshots.put)
        self.prober.unsubscribe(self.snapshots.put)

        self.prober.start()
        self._reply(9000, "hi")
        self._assert_no_snapshot()

    @pytest.mark.timeout(10)
    def test_dispose_is_idempotent_and_final(self) -> None:
        self.prober.start()
        self.prober.dispose()
        self.prober.dispose()

        assert self.prober.is_disposed
        assert not self.prober.is_running
        assert self.prober.address is None
        with pytest.raises(RuntimeError):
            self.prober.start()
        self.prober.stop()

    @pytest.mark.timeout(10)
    def test_no_callbacks_after_dispose(self) -> None:
        self.prober.start()
        self._reply(9000, "hi")
        self._next_snapshot()
        address = self.prober.address
        assert address is not None

        self.prober.dispose()
        # Pending work, including the final empty snapshot, is delivered
        # before dispose() returns.
        assert self.snapshots.get_nowait() == ()

        try:
            self.peer.sendto(
                build_reply(SERVICE, 9001, "late"), ("127.0.0.1", address[1])
            )
        except OSError:
            pass
        self._assert_no_snapshot()

    @pytest.mark.timeout(10)
    def test_dispose_from_inside_callback(self) -> None:
        disposed = threading.Event()

        def dispose_on_first(_snapshot: Snapshot) -> None:
            self.prober.dispose()
            disposed.set()

        self.prober.subscribe(dispose_on_first)
        self.prober.start()
        self._reply(9000, "hi")

        assert disposed.wait(2.0)
        assert self.prober.is_disposed
        assert not self.prober.is_running

    @pytest.mark.timeout(10)
    def test_later_subscribers_skipped_after_dispose_in_callback(self) -> None:
        disposed_returned = threading.Event()
        late_calls: List[Snapshot] = []

        def first(_snapshot: Snapshot) -> None:
            self.prober.dispose()
            disposed_returned.set()

        def second(snapshot: Snapshot) -> None:
            if disposed_returned.is_set():
                late_calls.append(snapshot)

        self.prober.unsubscribe(self.snapshots.put)
        self.prober.subscribe(first)
        self.prober.subscribe(second)
        self.prober.start()
        self._reply(9000, "hi")

        assert disposed_returned.wait(2.0)
        time.sleep(0.1)
        assert late_calls == []

    def test_context_manager_disposes(self) -> None:
        with Prober(SERVICE, config=self.config) as prober:
            prober.start()
        assert prober.is_disposed


def test_bind_failure_raises_bind_error() -> None:
    with pytest.raises(BindError):
        Prober(SERVICE, config=DiscoveryConfig(bind_address="192.0.2.1"))


def test_service_type_must_be_text() -> None:
    with pytest.raises(TypeError):
        Prober(b"svc")  # type: ignore[arg-type]


def test_snapshot_entries_compare_by_address_and_port() -> None:
    a = DiscoveredEndpoint("127.0.0.1", 9000, "x", 1.0)
    b = DiscoveredEndpoint("127.0.0.1", 9000, "y", 2.0)
    assert a == b
