"""Defines Advertiser, the half of discovery that answers queries."""

import asyncio
import concurrent.futures
import logging
import socket
import threading
from collections.abc import Callable
from typing import List, Optional, Tuple

from lanbeacon.config.discovery_config import DiscoveryConfig
from lanbeacon.threading.aio.aio_utils import (
    is_running_on_event_loop,
    run_on_event_loop,
)
from lanbeacon.threading.aio.event_loop_factory import EventLoopFactory
from lanbeacon.threading.atomic import Atomic
from lanbeacon.threading.thread_watcher import ThreadWatcher
from lanbeacon.transport.datagram_protocol import (
    Address,
    close_transport,
    open_datagram_endpoint,
)
from lanbeacon.transport.udp_socket import create_discovery_socket
from lanbeacon.util.disposable import Disposable
from lanbeacon.wire.codec import encode_port
from lanbeacon.wire.messages import build_query, build_reply, is_query

logger = logging.getLogger(__name__)

PayloadProvider = Callable[[], str]
QueryCallback = Callable[[Address], None]

_SHUTDOWN_TIMEOUT_SECONDS = 5.0


class Advertiser(Disposable):
    """Makes this process discoverable under a service type.

    While started, the advertiser listens on the discovery port and answers
    every query for its service type with a unicast reply carrying
    |advertised_port| and the current payload. The payload is read anew for
    each reply, either from the `payload` property or from a provider.

    Queries are handled on a background event loop thread. Subscribers
    registered with `subscribe` are told the address of each querier that
    was answered, on that same thread.
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        service_type: str,
        advertised_port: int,
        payload: str = "",
        *,
        payload_provider: Optional[PayloadProvider] = None,
        config: Optional[DiscoveryConfig] = None,
        watcher: Optional[ThreadWatcher] = None,
    ) -> None:
        """
        Args:
            service_type: Discovery channel to answer queries on.
            advertised_port: Service port announced in replies. Unrelated to
                the discovery port.
            payload: Initial payload, used when no provider is given.
            payload_provider: Called for every reply to obtain the payload.
            config: Network settings. Defaults to `DiscoveryConfig()`.
            watcher: Receives exceptions escaping the I/O thread.

        Raises:
            TypeError: If |service_type| is not a string.
            ValueError: If |advertised_port| is out of range or
                |service_type| is too long to encode.
        """
        if not isinstance(service_type, str):
            raise TypeError(
                f"service_type must be str, got {type(service_type).__name__}."
            )
        # Both raise ValueError for values that cannot go on the wire.
        build_query(service_type)
        encode_port(advertised_port)

        self.__service_type = service_type
        self.__advertised_port = advertised_port
        self.__payload = Atomic[str](payload)
        self.__payload_provider = Atomic[Optional[PayloadProvider]](
            payload_provider
        )
        self.__config = config if config is not None else DiscoveryConfig()
        self.__watcher = watcher if watcher is not None else ThreadWatcher()

        self.__lifecycle_lock = threading.Lock()
        self.__is_running = Atomic[bool](False)
        self.__is_disposed = Atomic[bool](False)
        self.__socket: Optional[socket.socket] = None
        self.__loop_factory: Optional[EventLoopFactory] = None
        self.__transport: Optional[asyncio.DatagramTransport] = None

        self.__subscribers_lock = threading.Lock()
        self.__subscribers: List[QueryCallback] = []

    @property
    def service_type(self) -> str:
        return self.__service_type

    @property
    def advertised_port(self) -> int:
        return self.__advertised_port

    @property
    def payload(self) -> str:
        """The payload the next reply will carry."""
        provider = self.__payload_provider.get()
        if provider is not None:
            return provider()
        return self.__payload.get()

    @payload.setter
    def payload(self, value: str) -> None:
        """Sets a fixed payload, replacing any payload provider."""
        self.__payload_provider.set(None)
        self.__payload.set(value)

    @property
    def payload_provider(self) -> Optional[PayloadProvider]:
        return self.__payload_provider.get()

    @payload_provider.setter
    def payload_provider(self, provider: Optional[PayloadProvider]) -> None:
        self.__payload_provider.set(provider)

    @property
    def config(self) -> DiscoveryConfig:
        return self.__config

    @property
    def watcher(self) -> ThreadWatcher:
        return self.__watcher

    @property
    def is_running(self) -> bool:
        return self.__is_running.get()

    @property
    def address(self) -> Optional[Address]:
        """Local address of the discovery socket while running."""
        sock = self.__socket
        if sock is None:
            return None
        try:
            host, port = sock.getsockname()[:2]
        except OSError:
            return None
        return (host, port)

    def subscribe(self, callback: QueryCallback) -> None:
        """Registers |callback| to receive the address of answered queriers."""
        with self.__subscribers_lock:
            self.__subscribers.append(callback)

    def unsubscribe(self, callback: QueryCallback) -> None:
        with self.__subscribers_lock:
            try:
                self.__subscribers.remove(callback)
            except ValueError:
                logger.debug("unsubscribe() for unknown callback %r", callback)

    def start(self) -> None:
        """Binds the discovery port and starts answering queries.

        Does nothing if already started.

        Raises:
            BindError: If the discovery port cannot be bound.
            RuntimeError: If the advertiser was disposed.
        """
        with self.__lifecycle_lock:
            if self.__is_disposed.get():
                raise RuntimeError("Cannot start a disposed Advertiser.")
            if self.__is_running.get():
                return

            sock = create_discovery_socket(
                self.__config.bind_address,
                self.__config.discovery_port,
                reuse_port=self.__config.reuse_port,
            )
            name = f"Advertiser[{self.__service_type}]"
            factory = EventLoopFactory(self.__watcher, name=name)
            try:
                loop = factory.start_asyncio_loop()
                future = run_on_event_loop(
                    open_datagram_endpoint, loop, sock, self.__on_datagram, name
                )
                transport = future.result(timeout=_SHUTDOWN_TIMEOUT_SECONDS)
            except BaseException:
                factory.stop_asyncio_loop(_SHUTDOWN_TIMEOUT_SECONDS)
                sock.close()
                raise

            self.__socket = sock
            self.__loop_factory = factory
            self.__transport = transport
            self.__is_running.set(True)

        logger.info(
            "Advertising '%s' (port %d) on %s",
            self.__service_type,
            self.__advertised_port,
            self.address,
        )

    def stop(self) -> None:
        """Stops answering queries and closes the discovery socket.

        Safe to call repeatedly. The advertiser may be started again.
        """
        with self.__lifecycle_lock:
            if not self.__is_running.exchange(False):
                return
            sock, self.__socket = self.__socket, None
            factory, self.__loop_factory = self.__loop_factory, None
            transport, self.__transport = self.__transport, None

        if factory is not None:
            self.__shutdown_loop(factory, transport)
        if sock is not None:
            sock.close()
        logger.info("Stopped advertising '%s'", self.__service_type)

    def dispose(self) -> None:
        """Stops the advertiser for good. Idempotent."""
        if self.__is_disposed.exchange(True):
            return
        self.stop()
        with self.__subscribers_lock:
            self.__subscribers.clear()

    def __shutdown_loop(
        self,
        factory: EventLoopFactory,
        transport: Optional[asyncio.DatagramTransport],
    ) -> None:
        loop = factory.event_loop
        if transport is not None and loop is not None and not loop.is_closed():
            if is_running_on_event_loop(loop):
                transport.close()
            else:
                try:
                    run_on_event_loop(close_transport, loop, transport).result(
                        timeout=_SHUTDOWN_TIMEOUT_SECONDS
                    )
                except (RuntimeError, concurrent.futures.TimeoutError) as e:
                    logger.warning(
                        "Could not close transport of '%s' cleanly: %r",
                        self.__service_type,
                        e,
                    )
        factory.stop_asyncio_loop(_SHUTDOWN_TIMEOUT_SECONDS)

    def __on_datagram(self, data: bytes, addr: Address) -> Optional[bytes]:
        """Runs on the event loop thread for every received datagram.

        Returns the reply, which the protocol sends back to |addr|.
        """
        if not is_query(data, self.__service_type):
            # Other service types share the discovery port.
            return None

        try:
            reply = build_reply(
                self.__service_type, self.__advertised_port, self.payload
            )
        # pylint: disable=broad-exception-caught # Payload providers are user code.
        except Exception as e:
            logger.warning(
                "Could not build reply for '%s': %r",
                self.__service_type,
                e,
                exc_info=True,
            )
            return None

        logger.debug("Answering query for '%s' from %s", self.__service_type, addr)
        # Runs once the reply has been handed to the transport.
        asyncio.get_running_loop().call_soon(self.__notify_subscribers, addr)
        return reply

    def __notify_subscribers(self, addr: Address) -> None:
        with self.__subscribers_lock:
            subscribers = list(self.__subscribers)
        for callback in subscribers:
            try:
                callback(addr)
            # pylint: disable=broad-exception-caught
            except Exception as e:
                logger.error(
                    "Advertiser subscriber %r raised: %r",
                    callback,
                    e,
                    exc_info=True,
                )

    def __repr__(self) -> str:
        return (
            f"Advertiser(service_type={self.__service_type!r}, "
            f"advertised_port={self.__advertised_port}, "
            f"running={self.is_running})"
        )
