"""Defines Prober, the half of discovery that finds advertisers."""

import asyncio
import concurrent.futures
import logging
import threading
import time
from collections.abc import Callable, Sequence
from typing import Any, Coroutine, List, Optional

from lanbeacon.config.discovery_config import DiscoveryConfig
from lanbeacon.discovery.discovered_endpoint import DiscoveredEndpoint
from lanbeacon.discovery.endpoint_tracker import EndpointTracker
from lanbeacon.discovery.snapshot import Snapshot
from lanbeacon.errors import DecodeError
from lanbeacon.threading.aio.aio_utils import (
    is_running_on_event_loop,
    run_on_event_loop,
)
from lanbeacon.threading.aio.event_loop_factory import EventLoopFactory
from lanbeacon.threading.atomic import Atomic
from lanbeacon.threading.thread_watcher import ThreadWatcher
from lanbeacon.threading.wake_signal import WakeSignal
from lanbeacon.transport.datagram_protocol import (
    Address,
    close_transport,
    open_datagram_endpoint,
)
from lanbeacon.transport.udp_socket import (
    create_discovery_socket,
    try_enable_nat_traversal,
)
from lanbeacon.util.disposable import Disposable
from lanbeacon.util.ip import get_broadcast_addresses
from lanbeacon.wire.messages import build_query, parse_reply

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[Snapshot], None]

_SHUTDOWN_TIMEOUT_SECONDS = 5.0


async def _flush() -> None:
    """Completes once every callback queued before it has run."""


class Prober(Disposable):
    """Finds the advertisers of one service type on the local network.

    Construction binds an ephemeral UDP socket and starts two background
    threads: an event loop that receives replies, and a periodic loop that,
    while the prober is started, broadcasts a query, waits one probe
    interval, and prunes endpoints that have not answered within the
    endpoint timeout.

    Subscribers get the complete, sorted snapshot every time it changes.
    Callbacks run on the event loop thread, one at a time and in the order
    the changes happened; they never run on the thread that called
    `start()`, `stop()` or `dispose()`.
    """

    def __init__(
        self,
        service_type: str,
        *,
        config: Optional[DiscoveryConfig] = None,
        watcher: Optional[ThreadWatcher] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            service_type: Discovery channel to search.
            config: Network and timing settings.
            watcher: Receives exceptions escaping the background threads.
            clock: Source of `last_seen` timestamps, in seconds.

        Raises:
            BindError: If no UDP socket could be bound.
            TypeError: If |service_type| is not a string.
        """
        if not isinstance(service_type, str):
            raise TypeError(
                f"service_type must be str, got {type(service_type).__name__}."
            )
        self.__service_type = service_type
        self.__query = build_query(service_type)
        self.__config = config if config is not None else DiscoveryConfig()
        self.__watcher = watcher if watcher is not None else ThreadWatcher()
        self.__clock = clock

        # Guards the tracker and the queueing of notifications.
        self.__state_lock = threading.RLock()
        self.__tracker = EndpointTracker(self.__config.endpoint_timeout_seconds)
        self.__subscribers_lock = threading.Lock()
        self.__subscribers: List[SnapshotCallback] = []

        self.__is_running = Atomic[bool](False)
        self.__is_disposed = Atomic[bool](False)
        self.__callbacks_closed = Atomic[bool](False)
        self.__wake_signal = WakeSignal()

        self.__socket = create_discovery_socket(
            self.__config.bind_address, 0, reuse_port=False
        )
        try_enable_nat_traversal(self.__socket)

        name = f"Prober[{service_type}]"
        self.__loop_factory = EventLoopFactory(self.__watcher, name=name)
        try:
            self.__loop = self.__loop_factory.start_asyncio_loop()
            self.__transport: asyncio.DatagramTransport = run_on_event_loop(
                open_datagram_endpoint,
                self.__loop,
                self.__socket,
                self.__on_datagram,
                name,
            ).result(timeout=_SHUTDOWN_TIMEOUT_SECONDS)
        except BaseException:
            self.__loop_factory.stop_asyncio_loop(_SHUTDOWN_TIMEOUT_SECONDS)
            self.__socket.close()
            raise

        self.__periodic_thread = self.__watcher.create_tracked_thread(
            self.__run_periodic_loop, name=f"{name}-periodic"
        )
        self.__periodic_thread.start()

        logger.info(
            "Probing for '%s' from %s", service_type, self.__socket.getsockname()
        )

    @property
    def service_type(self) -> str:
        return self.__service_type

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
    def is_disposed(self) -> bool:
        return self.__is_disposed.get()

    @property
    def address(self) -> Optional[Address]:
        """Local address replies must be sent to, until disposed."""
        if self.__is_disposed.get():
            return None
        host, port = self.__socket.getsockname()[:2]
        return (host, port)

    @property
    def snapshot(self) -> Snapshot:
        """The endpoints currently known, sorted."""
        with self.__state_lock:
            return self.__tracker.snapshot

    def subscribe(self, callback: SnapshotCallback) -> None:
        """Registers |callback| for snapshot changes.

        Exceptions raised by |callback| are logged and otherwise ignored.
        """
        with self.__subscribers_lock:
            self.__subscribers.append(callback)

    def unsubscribe(self, callback: SnapshotCallback) -> None:
        with self.__subscribers_lock:
            try:
                self.__subscribers.remove(callback)
            except ValueError:
                logger.debug("unsubscribe() for unknown callback %r", callback)

    def start(self) -> None:
        """Starts broadcasting queries, beginning immediately. Idempotent.

        The current snapshot is kept; entries only leave it by timing out.

        Raises:
            RuntimeError: If the prober was disposed.
        """
        if self.__is_disposed.get():
            raise RuntimeError("Cannot start a disposed Prober.")
        if self.__is_running.exchange(True):
            return
        logger.info("Prober for '%s' started", self.__service_type)
        self.__wake_signal.set()

    def stop(self) -> None:
        """Stops broadcasting and empties the snapshot. Idempotent.

        Subscribers are sent the empty snapshot if it was not empty already.
        Replies arriving while stopped are ignored.
        """
        with self.__state_lock:
            if not self.__is_running.exchange(False):
                return
            self.__queue_notification(self.__tracker.clear())
        logger.info("Prober for '%s' stopped", self.__service_type)
        self.__wake_signal.set()

    def dispose(self) -> None:
        """Stops the prober for good and releases its threads and socket.

        Idempotent, and safe from any thread, including from inside a
        subscriber callback. No callback is invoked after this returns.
        """
        with self.__state_lock:
            if self.__is_disposed.get():
                return
            self.stop()
            self.__is_disposed.set(True)
        self.__wake_signal.set()

        current_thread = threading.current_thread()
        on_loop_thread = is_running_on_event_loop(self.__loop)

        if self.__periodic_thread is not current_thread and not on_loop_thread:
            self.__periodic_thread.join(_SHUTDOWN_TIMEOUT_SECONDS)

        if on_loop_thread:
            self.__transport.close()
        else:
            self.__run_and_wait(_flush)
            self.__run_and_wait(close_transport, self.__transport)

        self.__callbacks_closed.set(True)
        with self.__subscribers_lock:
            self.__subscribers.clear()

        self.__loop_factory.stop_asyncio_loop(_SHUTDOWN_TIMEOUT_SECONDS)
        self.__socket.close()
        logger.info("Prober for '%s' disposed", self.__service_type)

    def __run_and_wait(
        self, call: Callable[..., Coroutine[Any, Any, None]], *args: Any
    ) -> None:
        try:
            run_on_event_loop(call, self.__loop, *args).result(
                timeout=_SHUTDOWN_TIMEOUT_SECONDS
            )
        except (RuntimeError, concurrent.futures.TimeoutError) as e:
            logger.warning(
                "Prober for '%s' could not finish %s: %r",
                self.__service_type,
                getattr(call, "__name__", call),
                e,
            )

    def __run_periodic_loop(self) -> None:
        """Body of the periodic thread. Exits once disposed."""
        interval = self.__config.probe_interval_seconds
        while not self.__is_disposed.get():
            if not self.__is_running.get():
                self.__wake_signal.wait(interval)
                continue

            self.__broadcast_query()
            self.__wake_signal.wait(interval)
            if self.__is_disposed.get():
                break
            self.__prune()

    def __broadcast_targets(self) -> Sequence[str]:
        if self.__config.broadcast_addresses is not None:
            return self.__config.broadcast_addresses
        return get_broadcast_addresses()

    def __broadcast_query(self) -> None:
        try:
            targets = self.__broadcast_targets()
            port = self.__config.discovery_port
            for address in targets:
                self.__loop.call_soon_threadsafe(
                    self.__transport.sendto, self.__query, (address, port)
                )
        except RuntimeError as e:
            # The loop closed underneath us; only happens while disposing.
            logger.debug("Broadcast skipped: %r", e)
        # pylint: disable=broad-exception-caught # psutil and socket errors alike.
        except Exception as e:
            logger.warning(
                "Could not broadcast query for '%s': %r",
                self.__service_type,
                e,
                exc_info=True,
            )

    def __prune(self) -> None:
        with self.__state_lock:
            if self.__is_disposed.get():
                return
            self.__queue_notification(self.__tracker.prune(self.__clock()))

    def __on_datagram(self, data: bytes, addr: Address) -> None:
        """Runs on the event loop thread for every received datagram."""
        if not self.__is_running.get():
            return

        try:
            reply = parse_reply(data, self.__service_type)
        except DecodeError as e:
            logger.warning(
                "Malformed reply for '%s' from %s: %s", self.__service_type, addr, e
            )
            return
        if reply is None:
            return

        endpoint = DiscoveredEndpoint(
            address=addr[0],
            port=reply.port,
            payload=reply.payload,
            last_seen=self.__clock(),
        )
        with self.__state_lock:
            if self.__is_disposed.get() or not self.__is_running.get():
                return
            self.__queue_notification(self.__tracker.merge(endpoint))

    def __queue_notification(self, snapshot: Optional[Snapshot]) -> None:
        """Queues delivery of |snapshot| on the event loop thread.

        Must hold the state lock, so deliveries keep mutation order.
        """
        if snapshot is None:
            return
        try:
            self.__loop.call_soon_threadsafe(self.__deliver, snapshot)
        except RuntimeError as e:
            logger.debug("Dropping notification, loop closed: %r", e)

    def __deliver(self, snapshot: Snapshot) -> None:
        with self.__subscribers_lock:
            subscribers = list(self.__subscribers)
        for callback in subscribers:
            # An earlier subscriber may have disposed the prober.
            if self.__callbacks_closed.get():
                return
            try:
                callback(snapshot)
            # pylint: disable=broad-exception-caught
            except Exception as e:
                logger.error(
                    "Prober subscriber %r raised: %r", callback, e, exc_info=True
                )

    def __repr__(self) -> str:
        return (
            f"Prober(service_type={self.__service_type!r}, "
            f"running={self.is_running}, disposed={self.is_disposed})"
        )
