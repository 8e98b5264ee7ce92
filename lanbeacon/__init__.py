"""lanbeacon: zero-configuration presence discovery on a local network.

An `Advertiser` answers UDP broadcast queries for a service type with its
port and an application payload; a `Prober` broadcasts those queries and
keeps a live, sorted list of the advertisers that answer.
"""

from lanbeacon.config.discovery_config import DEFAULT_DISCOVERY_PORT, DiscoveryConfig
from lanbeacon.discovery.advertiser import Advertiser
from lanbeacon.discovery.discovered_endpoint import DiscoveredEndpoint
from lanbeacon.discovery.prober import Prober
from lanbeacon.discovery.snapshot import Snapshot
from lanbeacon.errors import (
    BindError,
    DecodeError,
    DiscoveryError,
    PlatformFeatureUnavailable,
    SendError,
)

__all__ = [
    "Advertiser",
    "BindError",
    "DEFAULT_DISCOVERY_PORT",
    "DecodeError",
    "DiscoveredEndpoint",
    "DiscoveryConfig",
    "DiscoveryError",
    "PlatformFeatureUnavailable",
    "Prober",
    "SendError",
    "Snapshot",
]
