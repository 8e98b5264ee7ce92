import logging
import socket

import pytest

logging.getLogger("lanbeacon").setLevel(logging.DEBUG)


@pytest.fixture
def discovery_port() -> int:
    """A UDP port that was free a moment ago, for a private discovery channel."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind(("", 0))
        return int(sock.getsockname()[1])


@pytest.fixture
def client_socket():  # type: ignore[no-untyped-def]
    """A plain UDP socket standing in for a remote peer."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.settimeout(2.0)
    sock.bind(("127.0.0.1", 0))
    yield sock
    sock.close()
