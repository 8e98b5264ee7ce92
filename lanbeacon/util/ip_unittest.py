import socket
from collections import namedtuple

import pytest

from lanbeacon.util import ip

FakeAddress = namedtuple("FakeAddress", ["family", "address", "broadcast"])


@pytest.fixture
def fake_interfaces(mocker):  # type: ignore[no-untyped-def]
    interfaces = {
        "lo": [
            FakeAddress(socket.AF_INET, "127.0.0.1", None),
            FakeAddress(socket.AF_INET6, "::1", None),
        ],
        "eth0": [
            FakeAddress(socket.AF_INET, "192.168.1.20", "192.168.1.255"),
            FakeAddress(socket.AF_INET6, "fe80::1", None),
        ],
        "eth1": [
            FakeAddress(socket.AF_INET, "10.0.0.5", "10.0.0.255"),
            FakeAddress(socket.AF_INET, "10.0.0.6", "10.0.0.255"),
        ],
    }
    return mocker.patch.object(ip.psutil, "net_if_addrs", return_value=interfaces)


def test_get_all_address_strings_lists_ipv4_only(fake_interfaces) -> None:  # type: ignore[no-untyped-def]
    assert ip.get_all_address_strings() == [
        "127.0.0.1",
        "192.168.1.20",
        "10.0.0.5",
        "10.0.0.6",
    ]
    fake_interfaces.assert_called_once()


def test_broadcast_addresses_start_with_limited_broadcast(fake_interfaces) -> None:  # type: ignore[no-untyped-def]
    assert ip.get_broadcast_addresses() == [
        "255.255.255.255",
        "192.168.1.255",
        "10.0.0.255",
    ]


def test_broadcast_addresses_without_interfaces(mocker) -> None:  # type: ignore[no-untyped-def]
    mocker.patch.object(ip.psutil, "net_if_addrs", return_value={})
    assert ip.get_broadcast_addresses() == ["255.255.255.255"]
    assert ip.get_all_address_strings() == []


def test_real_interfaces_include_limited_broadcast() -> None:
    addresses = ip.get_broadcast_addresses()
    assert addresses[0] == "255.255.255.255"
    assert len(addresses) == len(set(addresses))
