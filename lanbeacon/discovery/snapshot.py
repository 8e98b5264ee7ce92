"""Ordering and comparison of prober snapshots.

A snapshot is an immutable tuple of `DiscoveredEndpoint`, unique by
identity and sorted by payload, then address, then port. The order has no
protocol meaning; it only makes the lists handed to subscribers stable.
"""

import ipaddress
from typing import Iterable, Tuple

from lanbeacon.discovery.discovered_endpoint import DiscoveredEndpoint

Snapshot = Tuple[DiscoveredEndpoint, ...]

EMPTY_SNAPSHOT: Snapshot = ()


def _address_key(address: str) -> Tuple[int, int, str]:
    try:
        parsed = ipaddress.ip_address(address)
    except ValueError:
        # Not an IP literal; sort after every IP, lexically.
        return (7, 0, address)
    return (parsed.version, int(parsed), "")


def sort_key(endpoint: DiscoveredEndpoint) -> Tuple[str, Tuple[int, int, str], int]:
    """Payload lexically, then address numerically, then port."""
    return (endpoint.payload, _address_key(endpoint.address), endpoint.port)


def build_snapshot(endpoints: Iterable[DiscoveredEndpoint]) -> Snapshot:
    """Sorts |endpoints| into a snapshot.

    |endpoints| must already be unique by identity.
    """
    return tuple(sorted(endpoints, key=sort_key))


def snapshot_content(
    snapshot: Snapshot,
) -> Tuple[Tuple[str, int, str], ...]:
    """The observable content of |snapshot|, in order, without timestamps."""
    return tuple(endpoint.content for endpoint in snapshot)


def snapshots_equal(first: Snapshot, second: Snapshot) -> bool:
    """True when a subscriber could not tell |first| and |second| apart."""
    return snapshot_content(first) == snapshot_content(second)
