"""UDP transport helpers for lanbeacon."""

from lanbeacon.transport.datagram_protocol import (
    DatagramHandlerProtocol,
    close_transport,
    open_datagram_endpoint,
)
from lanbeacon.transport.udp_socket import (
    create_discovery_socket,
    enable_nat_traversal,
    try_enable_nat_traversal,
)

__all__ = [
    "DatagramHandlerProtocol",
    "close_transport",
    "create_discovery_socket",
    "enable_nat_traversal",
    "open_datagram_endpoint",
    "try_enable_nat_traversal",
]
