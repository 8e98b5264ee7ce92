"""Asyncio datagram protocol that forwards datagrams to a handler."""

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Optional, Tuple

from lanbeacon.errors import SendError

logger = logging.getLogger(__name__)

Address = Tuple[str, int]
# Returns the bytes to send back to the datagram's source, or None.
DatagramHandler = Callable[[bytes, Address], Optional[bytes]]


class DatagramHandlerProtocol(asyncio.DatagramProtocol):
    """Hands every received datagram to |handler| on the event loop thread
    and sends whatever it returns back to the sender on this transport.

    The transport keeps reading after each callback, so the receive loop
    re-arms itself no matter what the handler does. Exceptions from the
    handler and transport-level send errors are logged and dropped; neither
    ever closes the transport.
    """

    def __init__(self, handler: DatagramHandler, name: str) -> None:
        self.__handler = handler
        self.__name = name
        self.__transport: Optional[asyncio.DatagramTransport] = None

    @property
    def transport(self) -> Optional[asyncio.DatagramTransport]:
        return self.__transport

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        assert isinstance(transport, asyncio.DatagramTransport)
        self.__transport = transport

    def datagram_received(self, data: bytes, addr: Any) -> None:
        try:
            response = self.__handler(data, (addr[0], addr[1]))
        # pylint: disable=broad-exception-caught # One bad datagram must not stop the loop.
        except Exception as e:
            logger.warning(
                "%s: dropped datagram from %s after error: %r",
                self.__name,
                addr,
                e,
                exc_info=True,
            )
            return

        if response is not None and self.__transport is not None:
            self.__transport.sendto(response, addr)

    def error_received(self, exc: Exception) -> None:
        # Raised by a failed sendto, or an ICMP error for an earlier send.
        logger.warning("%s: %s", self.__name, SendError(str(exc)))

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if exc is not None:
            logger.warning("%s: transport lost: %r", self.__name, exc)
        else:
            logger.debug("%s: transport closed", self.__name)
        self.__transport = None


async def open_datagram_endpoint(
    sock: Any, handler: DatagramHandler, name: str
) -> asyncio.DatagramTransport:
    """Wraps the already-bound |sock| in a datagram transport on the
    running loop, delivering datagrams to |handler|.
    """
    loop = asyncio.get_running_loop()
    transport, _ = await loop.create_datagram_endpoint(
        lambda: DatagramHandlerProtocol(handler, name), sock=sock
    )
    return transport


async def close_transport(transport: asyncio.BaseTransport) -> None:
    """Closes |transport| and yields once so `connection_lost` runs."""
    transport.close()
    await asyncio.sleep(0)
