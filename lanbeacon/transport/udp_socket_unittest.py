import socket

import pytest

from lanbeacon.errors import BindError, DiscoveryError, PlatformFeatureUnavailable
from lanbeacon.transport import udp_socket
from lanbeacon.transport.udp_socket import (
    create_discovery_socket,
    enable_nat_traversal,
    try_enable_nat_traversal,
)


def test_ephemeral_socket_is_broadcast_capable_and_non_blocking() -> None:
    sock = create_discovery_socket("127.0.0.1", 0)
    try:
        host, port = sock.getsockname()
        assert host == "127.0.0.1"
        assert port > 0
        assert sock.getsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST) != 0
        assert sock.getsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR) != 0
        assert sock.getblocking() is False
    finally:
        sock.close()


def test_two_reusing_sockets_share_a_port() -> None:
    first = create_discovery_socket("", 0)
    try:
        port = first.getsockname()[1]
        second = create_discovery_socket("", port)
        second.close()
    finally:
        first.close()


def test_bind_to_foreign_address_raises_bind_error() -> None:
    # TEST-NET-1 is never assigned to a local interface.
    with pytest.raises(BindError) as exc_info:
        create_discovery_socket("192.0.2.1", 0)
    assert isinstance(exc_info.value, DiscoveryError)
    assert isinstance(exc_info.value.__cause__, OSError)


def test_bind_to_port_held_exclusively_raises_bind_error() -> None:
    holder = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        holder.bind(("127.0.0.1", 0))
        port = holder.getsockname()[1]
        with pytest.raises(BindError):
            create_discovery_socket("127.0.0.1", port, reuse_port=False)
    finally:
        holder.close()


def test_socket_creation_failure_raises_bind_error(mocker) -> None:  # type: ignore[no-untyped-def]
    mocker.patch.object(
        udp_socket.socket, "socket", side_effect=OSError("no sockets left")
    )
    with pytest.raises(BindError, match="no sockets left"):
        create_discovery_socket("", 0)


def test_nat_traversal_unavailable_off_windows(mocker) -> None:  # type: ignore[no-untyped-def]
    mocker.patch.object(udp_socket.sys, "platform", "linux")
    sock = mocker.Mock(spec=socket.socket)

    with pytest.raises(PlatformFeatureUnavailable):
        enable_nat_traversal(sock)
    assert try_enable_nat_traversal(sock) is False
    sock.setsockopt.assert_not_called()


def test_nat_traversal_sets_protection_level_on_windows(mocker) -> None:  # type: ignore[no-untyped-def]
    mocker.patch.object(udp_socket.sys, "platform", "win32")
    sock = mocker.Mock(spec=socket.socket)

    assert try_enable_nat_traversal(sock) is True
    sock.setsockopt.assert_called_once_with(socket.IPPROTO_IP, 23, 10)


def test_nat_traversal_failure_is_reported(mocker) -> None:  # type: ignore[no-untyped-def]
    mocker.patch.object(udp_socket.sys, "platform", "win32")
    sock = mocker.Mock(spec=socket.socket)
    sock.setsockopt.side_effect = OSError("denied")

    with pytest.raises(PlatformFeatureUnavailable, match="denied"):
        enable_nat_traversal(sock)
    assert try_enable_nat_traversal(sock) is False


def test_non_oserror_during_bind_closes_socket(mocker) -> None:  # type: ignore[no-untyped-def]
    fake_sock = mocker.Mock(spec=socket.socket)
    fake_sock.bind.side_effect = TypeError("port must be int")
    mocker.patch.object(udp_socket.socket, "socket", return_value=fake_sock)

    with pytest.raises(TypeError):
        create_discovery_socket("", 1.5)  # type: ignore[arg-type]
    fake_sock.close.assert_called_once()
