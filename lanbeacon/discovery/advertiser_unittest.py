import socket
import threading
from typing import List

import pytest

from lanbeacon.config.discovery_config import DiscoveryConfig
from lanbeacon.discovery import advertiser as advertiser_module
from lanbeacon.discovery.advertiser import Advertiser
from lanbeacon.errors import BindError
from lanbeacon.transport.datagram_protocol import Address
from lanbeacon.wire.messages import build_query, build_reply


def _query(client: socket.socket, port: int, service_type: str) -> None:
    client.sendto(build_query(service_type), ("127.0.0.1", port))


class TestAdvertiser:
    @pytest.fixture(autouse=True)
    def _advertiser(self, discovery_port: int):  # type: ignore[no-untyped-def]
        self.port = discovery_port
        self.advertiser = Advertiser(
            "svc.test",
            8080,
            "hello",
            config=DiscoveryConfig(discovery_port=discovery_port),
        )
        yield
        self.advertiser.dispose()
        self.advertiser.watcher.check_for_exception()

    def test_constructor_validates_arguments(self) -> None:
        with pytest.raises(ValueError):
            Advertiser("svc", 70000)
        with pytest.raises(TypeError):
            Advertiser(b"svc", 1)  # type: ignore[arg-type]

    def test_not_running_until_started(self) -> None:
        assert not self.advertiser.is_running
        assert self.advertiser.address is None
        assert self.advertiser.service_type == "svc.test"
        assert self.advertiser.advertised_port == 8080

    @pytest.mark.timeout(10)
    def test_answers_query_with_port_and_payload(
        self, client_socket: socket.socket
    ) -> None:
        self.advertiser.start()
        assert self.advertiser.is_running
        assert self.advertiser.address is not None
        assert self.advertiser.address[1] == self.port

        _query(client_socket, self.port, "svc.test")
        data, _ = client_socket.recvfrom(1024)

        assert data == build_reply("svc.test", 8080, "hello")

    @pytest.mark.timeout(10)
    def test_ignores_other_service_types(self, client_socket: socket.socket) -> None:
        self.advertiser.start()

        _query(client_socket, self.port, "svc.other")
        _query(client_socket, self.port, "svc")
        client_socket.sendto(b"\x00", ("127.0.0.1", self.port))
        _query(client_socket, self.port, "svc.test")

        # Only the last query is answered.
        data, _ = client_socket.recvfrom(1024)
        assert data == build_reply("svc.test", 8080, "hello")
        client_socket.settimeout(0.2)
        with pytest.raises(socket.timeout):
            client_socket.recvfrom(1024)

    @pytest.mark.timeout(10)
    def test_query_with_trailing_bytes_is_answered(
        self, client_socket: socket.socket
    ) -> None:
        self.advertiser.start()
        client_socket.sendto(
            build_query("svc.test") + b"extra", ("127.0.0.1", self.port)
        )
        data, _ = client_socket.recvfrom(1024)
        assert data == build_reply("svc.test", 8080, "hello")

    @pytest.mark.timeout(10)
    def test_reply_is_built_by_message_helpers(
        self, mocker, client_socket: socket.socket  # type: ignore[no-untyped-def]
    ) -> None:
        query_spy = mocker.spy(advertiser_module, "is_query")
        reply_spy = mocker.spy(advertiser_module, "build_reply")
        self.advertiser.start()

        _query(client_socket, self.port, "svc.test")
        client_socket.recvfrom(1024)

        query_spy.assert_called_with(build_query("svc.test"), "svc.test")
        reply_spy.assert_called_once_with("svc.test", 8080, "hello")

    @pytest.mark.timeout(10)
    def test_payload_is_read_for_every_reply(
        self, client_socket: socket.socket
    ) -> None:
        self.advertiser.start()

        _query(client_socket, self.port, "svc.test")
        first, _ = client_socket.recvfrom(1024)
        self.advertiser.payload = "updated"
        _query(client_socket, self.port, "svc.test")
        second, _ = client_socket.recvfrom(1024)

        assert first == build_reply("svc.test", 8080, "hello")
        assert second == build_reply("svc.test", 8080, "updated")

    @pytest.mark.timeout(10)
    def test_payload_provider_is_called_per_query(
        self, client_socket: socket.socket
    ) -> None:
        calls: List[int] = []

        def provider() -> str:
            calls.append(1)
            return f"load={len(calls)}"

        self.advertiser.payload_provider = provider
        self.advertiser.start()

        _query(client_socket, self.port, "svc.test")
        first, _ = client_socket.recvfrom(1024)
        _query(client_socket, self.port, "svc.test")
        second, _ = client_socket.recvfrom(1024)

        assert first == build_reply("svc.test", 8080, "load=1")
        assert second == build_reply("svc.test", 8080, "load=2")

        self.advertiser.payload = "fixed"
        assert self.advertiser.payload_provider is None
        assert self.advertiser.payload == "fixed"

    @pytest.mark.timeout(10)
    def test_failing_payload_provider_skips_reply(
        self, client_socket: socket.socket
    ) -> None:
        def provider() -> str:
            raise RuntimeError("provider broke")

        self.advertiser.payload_provider = provider
        self.advertiser.start()

        _query(client_socket, self.port, "svc.test")
        client_socket.settimeout(0.3)
        with pytest.raises(socket.timeout):
            client_socket.recvfrom(1024)
        assert self.advertiser.is_running

    @pytest.mark.timeout(10)
    def test_subscribers_see_querier_address(
        self, client_socket: socket.socket
    ) -> None:
        seen: List[Address] = []
        notified = threading.Event()

        def on_query(addr: Address) -> None:
            seen.append(addr)
            notified.set()

        def broken(_addr: Address) -> None:
            raise ValueError("subscriber error")

        self.advertiser.subscribe(broken)
        self.advertiser.subscribe(on_query)
        self.advertiser.start()

        _query(client_socket, self.port, "svc.test")
        client_socket.recvfrom(1024)

        assert notified.wait(2.0)
        assert seen == [client_socket.getsockname()]

        self.advertiser.unsubscribe(on_query)
        self.advertiser.unsubscribe(on_query)

    @pytest.mark.timeout(10)
    def test_start_and_stop_are_idempotent(self) -> None:
        self.advertiser.start()
        self.advertiser.start()
        assert self.advertiser.is_running

        self.advertiser.stop()
        self.advertiser.stop()
        assert not self.advertiser.is_running
        assert self.advertiser.address is None

    @pytest.mark.timeout(10)
    def test_restart_after_stop(self, client_socket: socket.socket) -> None:
        self.advertiser.start()
        self.advertiser.stop()
        self.advertiser.start()

        _query(client_socket, self.port, "svc.test")
        data, _ = client_socket.recvfrom(1024)
        assert data == build_reply("svc.test", 8080, "hello")

    @pytest.mark.timeout(10)
    def test_stopped_advertiser_does_not_answer(
        self, client_socket: socket.socket
    ) -> None:
        self.advertiser.start()
        self.advertiser.stop()

        _query(client_socket, self.port, "svc.test")
        client_socket.settimeout(0.3)
        with pytest.raises((socket.timeout, ConnectionError)):
            client_socket.recvfrom(1024)

    @pytest.mark.timeout(10)
    def test_port_held_exclusively_raises_bind_error(self) -> None:
        holder = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            holder.bind(("", self.port))
            with pytest.raises(BindError):
                self.advertiser.start()
            assert not self.advertiser.is_running
        finally:
            holder.close()

    @pytest.mark.timeout(10)
    def test_start_after_dispose_raises(self) -> None:
        self.advertiser.start()
        self.advertiser.dispose()
        self.advertiser.dispose()

        assert not self.advertiser.is_running
        with pytest.raises(RuntimeError):
            self.advertiser.start()

    @pytest.mark.timeout(10)
    def test_context_manager_disposes(self) -> None:
        with Advertiser(
            "svc.ctx", 1, config=DiscoveryConfig(discovery_port=self.port)
        ) as advertiser:
            advertiser.start()
            assert advertiser.is_running
        assert not advertiser.is_running
        with pytest.raises(RuntimeError):
            advertiser.start()
