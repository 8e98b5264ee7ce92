"""Configuration parameters shared by advertisers and probers.

Both ends of the protocol must agree on `discovery_port`; the remaining
values only tune the local component.
"""

import dataclasses
from typing import Any, Optional, Tuple

DEFAULT_DISCOVERY_PORT = 35891
DEFAULT_PROBE_INTERVAL_SECONDS = 2.0
DEFAULT_ENDPOINT_TIMEOUT_SECONDS = 5.0
LIMITED_BROADCAST_ADDRESS = "255.255.255.255"


@dataclasses.dataclass(frozen=True)
class DiscoveryConfig:
    """Holds the network and timing settings of a discovery component.

    Attributes:
        discovery_port: Well-known UDP port advertisers listen on and
            probers broadcast to.
        probe_interval_seconds: Time between two prober broadcasts, and
            between a broadcast and the following prune pass.
        endpoint_timeout_seconds: An endpoint not heard from for at least
            this long is dropped by the next prune pass.
        broadcast_addresses: Targets for prober queries. None selects the
            limited broadcast address plus the subnet broadcast address of
            every IPv4 interface.
        bind_address: Local address both components bind to. Empty means
            all interfaces.
        reuse_port: Also set SO_REUSEPORT where the platform supports it,
            so several advertisers on one host can share the discovery port.
    """

    discovery_port: int = DEFAULT_DISCOVERY_PORT
    probe_interval_seconds: float = DEFAULT_PROBE_INTERVAL_SECONDS
    endpoint_timeout_seconds: float = DEFAULT_ENDPOINT_TIMEOUT_SECONDS
    broadcast_addresses: Optional[Tuple[str, ...]] = None
    bind_address: str = ""
    reuse_port: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.discovery_port, bool) or not isinstance(
            self.discovery_port, int
        ):
            raise TypeError(
                "discovery_port must be an int, got "
                f"{type(self.discovery_port).__name__}."
            )
        if not 0 < self.discovery_port <= 0xFFFF:
            raise ValueError(
                f"discovery_port must be in 1..65535, got {self.discovery_port}."
            )
        if self.probe_interval_seconds <= 0:
            raise ValueError(
                "probe_interval_seconds must be positive, got "
                f"{self.probe_interval_seconds}."
            )
        if self.endpoint_timeout_seconds <= 0:
            raise ValueError(
                "endpoint_timeout_seconds must be positive, got "
                f"{self.endpoint_timeout_seconds}."
            )
        if self.broadcast_addresses is not None:
            if isinstance(self.broadcast_addresses, str):
                raise TypeError(
                    "broadcast_addresses must be a sequence of addresses, "
                    "not a single string."
                )
            # Frozen dataclass, so normalize through object.__setattr__.
            object.__setattr__(
                self, "broadcast_addresses", tuple(self.broadcast_addresses)
            )

    def with_overrides(self, **overrides: Any) -> "DiscoveryConfig":
        """Returns a copy with the given fields replaced."""
        return dataclasses.replace(self, **overrides)
