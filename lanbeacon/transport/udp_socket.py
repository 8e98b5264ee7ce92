"""Creation and configuration of the UDP sockets used for discovery."""

import logging
import socket
import sys

from lanbeacon.errors import BindError, PlatformFeatureUnavailable

logger = logging.getLogger(__name__)

# Winsock option and value behind .NET's UdpClient.AllowNatTraversal(true).
_IP_PROTECTION_LEVEL = 23
_PROTECTION_LEVEL_UNRESTRICTED = 10


def create_discovery_socket(
    bind_address: str, port: int, *, reuse_port: bool = True
) -> socket.socket:
    """Creates a non-blocking, broadcast-capable UDP socket bound to
    (|bind_address|, |port|).

    Address reuse is always enabled so several processes on one host can
    listen on the shared discovery port. Port 0 binds an ephemeral port.

    Raises:
        BindError: If the socket cannot be created, configured or bound.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    except OSError as e:
        raise BindError(f"Could not create UDP socket: {e}") from e

    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if reuse_port and hasattr(socket, "SO_REUSEPORT"):
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            except OSError as e:
                logger.debug("SO_REUSEPORT not supported here: %s", e)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.bind((bind_address, port))
        sock.setblocking(False)
    except OSError as e:
        sock.close()
        raise BindError(
            f"Could not bind UDP socket to {bind_address or '*'}:{port}: {e}"
        ) from e
    except BaseException:
        sock.close()
        raise

    logger.info("Bound discovery socket to %s", sock.getsockname())
    return sock


def enable_nat_traversal(sock: socket.socket) -> None:
    """Lifts the Windows edge-traversal restriction on |sock|.

    Raises:
        PlatformFeatureUnavailable: On platforms without the option, or if
            setting it fails.
    """
    if sys.platform != "win32":
        raise PlatformFeatureUnavailable(
            f"NAT traversal option is not available on {sys.platform}."
        )
    try:
        sock.setsockopt(
            socket.IPPROTO_IP,
            _IP_PROTECTION_LEVEL,
            _PROTECTION_LEVEL_UNRESTRICTED,
        )
    except OSError as e:
        raise PlatformFeatureUnavailable(
            f"Could not enable NAT traversal: {e}"
        ) from e


def try_enable_nat_traversal(sock: socket.socket) -> bool:
    """Best-effort wrapper around `enable_nat_traversal`.

    Returns:
        Whether NAT traversal is now enabled. Failure is logged only.
    """
    try:
        enable_nat_traversal(sock)
    except PlatformFeatureUnavailable as e:
        logger.info("Continuing without NAT traversal: %s", e)
        return False
    return True
