import asyncio
import logging
import socket
import threading
from typing import List, Tuple

import pytest

from lanbeacon.threading.aio.aio_utils import run_on_event_loop
from lanbeacon.threading.aio.event_loop_factory import EventLoopFactory
from lanbeacon.threading.thread_watcher import ThreadWatcher
from lanbeacon.transport.datagram_protocol import (
    DatagramHandlerProtocol,
    close_transport,
    open_datagram_endpoint,
)
from lanbeacon.transport.udp_socket import create_discovery_socket


def test_handler_errors_are_logged_not_raised(caplog) -> None:  # type: ignore[no-untyped-def]
    def handler(data: bytes, addr: Tuple[str, int]) -> None:
        raise ValueError("bad datagram")

    protocol = DatagramHandlerProtocol(handler, "test")
    with caplog.at_level(logging.WARNING):
        protocol.datagram_received(b"x", ("10.0.0.1", 1234))
    assert "dropped datagram" in caplog.text


def test_handler_receives_host_and_port_only() -> None:
    seen: List[Tuple[bytes, Tuple[str, int]]] = []
    protocol = DatagramHandlerProtocol(lambda d, a: seen.append((d, a)), "test")

    # IPv6 addresses arrive as 4-tuples.
    protocol.datagram_received(b"abc", ("::1", 9, 0, 0))
    assert seen == [(b"abc", ("::1", 9))]


def test_error_received_is_logged(caplog) -> None:  # type: ignore[no-untyped-def]
    protocol = DatagramHandlerProtocol(lambda d, a: None, "named")
    with caplog.at_level(logging.WARNING):
        protocol.error_received(OSError("unreachable"))
    assert "named" in caplog.text
    assert "unreachable" in caplog.text


def test_handler_response_is_sent_back_on_own_transport(mocker) -> None:  # type: ignore[no-untyped-def]
    transport = mocker.Mock(spec=asyncio.DatagramTransport)
    protocol = DatagramHandlerProtocol(lambda d, a: b"reply:" + d, "test")
    protocol.connection_made(transport)

    protocol.datagram_received(b"ping", ("10.0.0.1", 1234))

    transport.sendto.assert_called_once_with(b"reply:ping", ("10.0.0.1", 1234))


def test_no_response_sends_nothing(mocker) -> None:  # type: ignore[no-untyped-def]
    transport = mocker.Mock(spec=asyncio.DatagramTransport)
    protocol = DatagramHandlerProtocol(lambda d, a: None, "test")
    protocol.connection_made(transport)

    protocol.datagram_received(b"ping", ("10.0.0.1", 1234))

    transport.sendto.assert_not_called()


class TestOpenDatagramEndpoint:
    def setup_method(self) -> None:
        self.factory = EventLoopFactory(ThreadWatcher())
        self.loop = self.factory.start_asyncio_loop()

    def teardown_method(self) -> None:
        self.factory.stop_asyncio_loop(2.0)

    @pytest.mark.timeout(5)
    def test_datagrams_reach_handler_on_loop_thread(self) -> None:
        received: List[Tuple[bytes, Tuple[str, int]]] = []
        threads: List[threading.Thread] = []
        arrived = threading.Event()

        def handler(data: bytes, addr: Tuple[str, int]) -> None:
            received.append((data, addr))
            threads.append(threading.current_thread())
            if len(received) == 2:
                arrived.set()

        sock = create_discovery_socket("127.0.0.1", 0)
        port = sock.getsockname()[1]
        transport = run_on_event_loop(
            open_datagram_endpoint, self.loop, sock, handler, "test"
        ).result(1.0)

        sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sender.sendto(b"one", ("127.0.0.1", port))
            sender.sendto(b"two", ("127.0.0.1", port))
            assert arrived.wait(2.0)
            sender_port = sender.getsockname()[1]
        finally:
            sender.close()

        assert [data for data, _ in received] == [b"one", b"two"]
        assert received[0][1] == ("127.0.0.1", sender_port)
        assert threads[0] is self.factory.thread

        run_on_event_loop(close_transport, self.loop, transport).result(1.0)
        assert transport.is_closing()

    @pytest.mark.timeout(5)
    def test_handler_failure_does_not_stop_receiving(self) -> None:
        received: List[bytes] = []
        arrived = threading.Event()

        def handler(data: bytes, _addr: Tuple[str, int]) -> None:
            if data == b"bad":
                raise RuntimeError("handler failed")
            received.append(data)
            arrived.set()

        sock = create_discovery_socket("127.0.0.1", 0)
        port = sock.getsockname()[1]
        transport = run_on_event_loop(
            open_datagram_endpoint, self.loop, sock, handler, "test"
        ).result(1.0)

        sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sender.sendto(b"bad", ("127.0.0.1", port))
            sender.sendto(b"good", ("127.0.0.1", port))
            assert arrived.wait(2.0)
        finally:
            sender.close()

        assert received == [b"good"]
        run_on_event_loop(close_transport, self.loop, transport).result(1.0)


@pytest.mark.asyncio
@pytest.mark.timeout(5)
async def test_close_transport_runs_connection_lost() -> None:
    sock = create_discovery_socket("127.0.0.1", 0)
    transport = await open_datagram_endpoint(sock, lambda d, a: None, "t")
    protocol = transport.get_protocol()
    assert isinstance(protocol, DatagramHandlerProtocol)
    assert protocol.transport is transport

    await close_transport(transport)

    assert protocol.transport is None
    assert transport.is_closing()


@pytest.mark.asyncio
@pytest.mark.timeout(5)
async def test_first_datagram_is_answered_right_after_open() -> None:
    """The reply goes out even before the caller has stored the transport."""
    sock = create_discovery_socket("127.0.0.1", 0)
    port = sock.getsockname()[1]
    sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sender.settimeout(2.0)
    sender.bind(("127.0.0.1", 0))
    try:
        # Queued before the endpoint exists, so it is the first thing read.
        sender.sendto(b"early", ("127.0.0.1", port))
        transport = await open_datagram_endpoint(
            sock, lambda d, a: d.upper(), "test"
        )
        loop = asyncio.get_running_loop()
        data, _ = await loop.run_in_executor(None, sender.recvfrom, 1024)
        assert data == b"EARLY"
        await close_transport(transport)
    finally:
        sender.close()
