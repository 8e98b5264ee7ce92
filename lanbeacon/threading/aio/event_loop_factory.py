"""Provides EventLoopFactory, which runs an asyncio event loop on its own
tracked thread for the lifetime of a discovery component.
"""

import asyncio
import logging
import threading
from typing import Any, Optional

from lanbeacon.threading.thread_watcher import ThreadWatcher

logger = logging.getLogger(__name__)


class EventLoopFactory:
    """
    Creates an asyncio event loop running on a separate thread created by a
    `ThreadWatcher`, and tears it down again.

    Unhandled exceptions inside the loop are logged and forwarded to the
    watcher.
    """

    def __init__(self, watcher: ThreadWatcher, name: Optional[str] = None) -> None:
        """
        Args:
            watcher: ThreadWatcher that owns the loop's thread.
            name: Optional name for the loop's thread.

        Raises:
            ValueError: If |watcher| is None.
            TypeError: If |watcher| is not a ThreadWatcher.
        """
        if watcher is None:
            raise ValueError("Watcher argument cannot be None for EventLoopFactory.")
        if not isinstance(watcher, ThreadWatcher):
            raise TypeError(
                f"Watcher must be a ThreadWatcher, got {type(watcher).__name__}."
            )
        self.__watcher = watcher
        self.__name = name
        self.__event_loop_thread: Optional[threading.Thread] = None
        self.__event_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def event_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        return self.__event_loop

    @property
    def thread(self) -> Optional[threading.Thread]:
        return self.__event_loop_thread

    def start_asyncio_loop(self) -> asyncio.AbstractEventLoop:
        """
        Starts a new event loop on a new thread and waits until it runs.

        Returns:
            The running event loop.

        Raises:
            RuntimeError: If this factory already started a loop.
        """
        if self.__event_loop_thread is not None:
            raise RuntimeError("EventLoopFactory may only start one loop.")

        barrier = threading.Event()

        def handle_exception(
            _loop: asyncio.AbstractEventLoop, context: dict[str, Any]
        ) -> None:
            exception = context.get("exception")
            message = context.get("message")
            if exception is None:
                logger.critical(
                    "Event loop handler called without exception: %s", message
                )
                return

            if isinstance(exception, asyncio.CancelledError):
                return

            logger.error(
                "Unhandled exception in event loop: %s",
                message,
                exc_info=exception,
            )
            self.__watcher.on_exception_seen(exception)

        def run_event_loop() -> None:
            local_event_loop = asyncio.new_event_loop()
            try:
                local_event_loop.set_exception_handler(handle_exception)
                asyncio.set_event_loop(local_event_loop)
                self.__event_loop = local_event_loop
                local_event_loop.call_soon(barrier.set)
                local_event_loop.run_forever()
            finally:
                if not local_event_loop.is_closed():
                    local_event_loop.close()

        self.__event_loop_thread = self.__watcher.create_tracked_thread(
            target=run_event_loop, name=self.__name
        )
        self.__event_loop_thread.start()

        barrier.wait()

        assert (
            self.__event_loop is not None
        ), "Event loop was not initialized in the thread."
        return self.__event_loop

    def stop_asyncio_loop(self, timeout: Optional[float] = None) -> None:
        """
        Stops the loop and joins its thread.

        Safe to call more than once and before `start_asyncio_loop`. When
        called from the loop's own thread the loop is asked to stop but the
        thread is not joined.

        Args:
            timeout: Maximum seconds to wait for the thread to exit.
        """
        loop = self.__event_loop
        thread = self.__event_loop_thread
        if loop is None or thread is None:
            return

        if not loop.is_closed():
            try:
                loop.call_soon_threadsafe(loop.stop)
            except RuntimeError:
                # Closed between the check and the call.
                pass

        if thread is threading.current_thread():
            return

        thread.join(timeout)
        if thread.is_alive():
            logger.warning(
                "Event loop thread %s did not exit within %s seconds.",
                thread.name,
                timeout,
            )
