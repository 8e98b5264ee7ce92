"""Advertiser and Prober, the two halves of LAN discovery."""

from lanbeacon.discovery.advertiser import Advertiser
from lanbeacon.discovery.discovered_endpoint import DiscoveredEndpoint
from lanbeacon.discovery.endpoint_tracker import EndpointTracker
from lanbeacon.discovery.prober import Prober
from lanbeacon.discovery.snapshot import Snapshot, build_snapshot, sort_key

__all__ = [
    "Advertiser",
    "DiscoveredEndpoint",
    "EndpointTracker",
    "Prober",
    "Snapshot",
    "build_snapshot",
    "sort_key",
]
