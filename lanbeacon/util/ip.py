"""Utilities for local network interface addresses."""

import socket
from typing import List

import psutil  # type: ignore[import-untyped]

from lanbeacon.config.discovery_config import LIMITED_BROADCAST_ADDRESS


def get_all_address_strings() -> List[str]:
    """Returns every IPv4 address assigned to a local interface."""
    addresses: List[str] = []
    for _, interface_addresses in psutil.net_if_addrs().items():
        for address in interface_addresses:
            if address.family == socket.AF_INET:
                addresses.append(address.address)
    return addresses


def get_broadcast_addresses() -> List[str]:
    """Returns the addresses a prober should send its queries to.

    The limited broadcast address always comes first, followed by the
    directed broadcast address of each IPv4 interface that reports one.
    Duplicates are removed, order is otherwise preserved.
    """
    result: List[str] = [LIMITED_BROADCAST_ADDRESS]
    for _, interface_addresses in psutil.net_if_addrs().items():
        for address in interface_addresses:
            if address.family != socket.AF_INET:
                continue
            broadcast = getattr(address, "broadcast", None)
            if broadcast and broadcast not in result:
                result.append(broadcast)
    return result
