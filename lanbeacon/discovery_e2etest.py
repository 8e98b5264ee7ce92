"""End-to-end discovery tests: real advertisers and probers over loopback."""

import logging
import threading
import time
from collections.abc import Callable
from typing import Any, Iterator, List, Tuple

import pytest

from lanbeacon import Advertiser, DiscoveryConfig, Prober, Snapshot

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Reaches every socket bound to the discovery port on this host.
LOOPBACK_BROADCAST = "127.255.255.255"


def _contents(snapshot: Snapshot) -> List[Tuple[str, int, str]]:
    return [endpoint.content for endpoint in snapshot]


def _wait_for(
    prober: Prober,
    predicate: Callable[[Snapshot], bool],
    timeout: float = 5.0,
) -> Snapshot:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        snapshot = prober.snapshot
        if predicate(snapshot):
            return snapshot
        time.sleep(0.02)
    raise AssertionError(
        f"Condition not reached within {timeout}s, last snapshot: "
        f"{_contents(prober.snapshot)}"
    )


@pytest.fixture
def config(discovery_port: int) -> DiscoveryConfig:
    return DiscoveryConfig(
        discovery_port=discovery_port,
        probe_interval_seconds=0.1,
        endpoint_timeout_seconds=0.6,
        broadcast_addresses=(LOOPBACK_BROADCAST,),
    )


@pytest.fixture
def cleanup() -> Iterator[List[Any]]:
    components: List[Any] = []
    yield components
    for component in reversed(components):
        component.dispose()
    for component in components:
        component.watcher.check_for_exception()


@pytest.mark.timeout(20)
def test_prober_finds_advertiser_and_forgets_it(
    config: DiscoveryConfig, cleanup: List[Any]
) -> None:
    advertiser = Advertiser("svc.test", 4242, "hello", config=config)
    cleanup.append(advertiser)
    advertiser.start()

    prober = Prober("svc.test", config=config)
    cleanup.append(prober)
    received: List[Snapshot] = []
    prober.subscribe(received.append)
    prober.start()

    found = _wait_for(prober, lambda s: len(s) == 1)
    assert _contents(found) == [("127.0.0.1", 4242, "hello")]

    advertiser.stop()
    _wait_for(prober, lambda s: len(s) == 0)
    assert prober.is_running

    # Delivery may lag the snapshot property slightly.
    deadline = time.monotonic() + 2.0
    while (not received or received[-1] != ()) and time.monotonic() < deadline:
        time.sleep(0.02)
    assert received[-1] == ()
    assert _contents(received[0]) == [("127.0.0.1", 4242, "hello")]


@pytest.mark.timeout(20)
def test_service_types_do_not_mix(config: DiscoveryConfig, cleanup: List[Any]) -> None:
    advertiser_a = Advertiser("svc.a", 1001, "from-a", config=config)
    advertiser_b = Advertiser("svc.b", 1002, "from-b", config=config)
    cleanup.extend([advertiser_a, advertiser_b])
    advertiser_a.start()
    advertiser_b.start()

    prober = Prober("svc.a", config=config)
    cleanup.append(prober)
    prober.start()

    _wait_for(prober, lambda s: len(s) == 1)
    # Several more probe cycles.
    time.sleep(0.5)
    assert _contents(prober.snapshot) == [("127.0.0.1", 1001, "from-a")]


@pytest.mark.timeout(20)
def test_advertisers_sharing_a_port_are_listed_in_payload_order(
    config: DiscoveryConfig, cleanup: List[Any]
) -> None:
    first = Advertiser("svc.test", 5001, "zulu", config=config)
    second = Advertiser("svc.test", 5002, "alpha", config=config)
    cleanup.extend([first, second])
    first.start()
    second.start()

    prober = Prober("svc.test", config=config)
    cleanup.append(prober)
    prober.start()

    snapshot = _wait_for(prober, lambda s: len(s) == 2)
    assert _contents(snapshot) == [
        ("127.0.0.1", 5002, "alpha"),
        ("127.0.0.1", 5001, "zulu"),
    ]


@pytest.mark.timeout(20)
def test_payload_change_reaches_prober(
    config: DiscoveryConfig, cleanup: List[Any]
) -> None:
    advertiser = Advertiser("svc.test", 4242, "v1", config=config)
    cleanup.append(advertiser)
    advertiser.start()

    prober = Prober("svc.test", config=config)
    cleanup.append(prober)
    prober.start()
    _wait_for(prober, lambda s: len(s) == 1 and s[0].payload == "v1")

    advertiser.payload = "v2"
    snapshot = _wait_for(prober, lambda s: len(s) == 1 and s[0].payload == "v2")
    assert snapshot[0].port == 4242


@pytest.mark.timeout(20)
def test_two_probers_see_the_same_advertiser(
    config: DiscoveryConfig, cleanup: List[Any]
) -> None:
    advertiser = Advertiser("svc.test", 4242, "shared", config=config)
    cleanup.append(advertiser)
    advertiser.start()

    probers = [Prober("svc.test", config=config) for _ in range(2)]
    cleanup.extend(probers)
    for prober in probers:
        prober.start()

    for prober in probers:
        found = _wait_for(prober, lambda s: len(s) == 1)
        assert _contents(found) == [("127.0.0.1", 4242, "shared")]


@pytest.mark.timeout(20)
def test_advertiser_subscriber_sees_prober(
    config: DiscoveryConfig, cleanup: List[Any]
) -> None:
    queried = threading.Event()
    advertiser = Advertiser("svc.test", 4242, "hello", config=config)
    advertiser.subscribe(lambda _addr: queried.set())
    cleanup.append(advertiser)
    advertiser.start()

    prober = Prober("svc.test", config=config)
    cleanup.append(prober)
    prober.start()

    assert queried.wait(5.0)


@pytest.mark.timeout(20)
def test_stopped_prober_sends_nothing(
    config: DiscoveryConfig, cleanup: List[Any]
) -> None:
    queried = threading.Event()
    advertiser = Advertiser("svc.test", 4242, "hello", config=config)
    advertiser.subscribe(lambda _addr: queried.set())
    cleanup.append(advertiser)
    advertiser.start()

    prober = Prober("svc.test", config=config)
    cleanup.append(prober)

    assert not queried.wait(0.5)
    assert prober.snapshot == ()
