"""Defines DiscoveredEndpoint, one advertiser as seen by a prober."""

import dataclasses
from typing import Any, Tuple


@dataclasses.dataclass(frozen=True, eq=False)
class DiscoveredEndpoint:
    """An advertiser that answered a query.

    Two endpoints are equal when they share `address` and `port`, whatever
    their payload or timestamp; a newer reply from the same advertiser
    replaces the older one.

    Attributes:
        address: IP address the reply came from.
        port: Service port declared inside the reply. This is not the UDP
            source port of the reply.
        payload: Application payload carried by the reply.
        last_seen: Clock reading (seconds) when the reply was received.
    """

    address: str
    port: int
    payload: str
    last_seen: float

    @property
    def identity(self) -> Tuple[str, int]:
        return (self.address, self.port)

    @property
    def content(self) -> Tuple[str, int, str]:
        """Everything a subscriber can observe, i.e. all but `last_seen`."""
        return (self.address, self.port, self.payload)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, DiscoveredEndpoint):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)

    def __str__(self) -> str:
        return f"{self.address}:{self.port} ({self.payload!r})"
