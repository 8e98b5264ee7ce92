"""Defines ThrowingThread, a thread that reports exceptions from its target."""

import logging
import threading
from collections.abc import Callable
from typing import Any, Optional

logger = logging.getLogger(__name__)


class ThrowingThread(threading.Thread):
    """
    Subclass of `threading.Thread` that never lets an exception from its
    target vanish silently.

    Anything raised by the target is logged and handed to `on_error_cb`, so
    the owner (usually a `ThreadWatcher`) can surface it on another thread.
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        target: Callable[..., Any],
        on_error_cb: Callable[[Exception], None],
        args: tuple[Any, ...] = (),
        kwargs: Optional[dict[str, Any]] = None,
        name: Optional[str] = None,
        daemon: bool = True,
    ) -> None:
        """
        Initializes a ThrowingThread.

        Args:
            target: Callable invoked by run().
            on_error_cb: Receives any exception raised by |target|.
            args: Positional arguments for |target|.
            kwargs: Keyword arguments for |target|.
            name: Thread name, used in log output.
            daemon: Whether the thread is a daemon thread.
        """
        assert on_error_cb is not None, "on_error_cb cannot be None"
        self.__on_error_cb = on_error_cb
        self.__target = target
        self.__args = args
        self.__kwargs = kwargs if kwargs is not None else {}

        super().__init__(name=name, daemon=daemon)

    def run(self) -> None:
        try:
            self.__target(*self.__args, **self.__kwargs)
        # pylint: disable=broad-exception-caught # Reported, not swallowed.
        except Exception as e:
            logger.error(
                "Exception escaped thread %s (%s): %r",
                self.name,
                threading.get_ident(),
                e,
                exc_info=True,
            )
            self.__on_error_cb(e)

    def start(self) -> None:
        """
        Starts the thread.

        Failures to spawn the thread are reported to `on_error_cb` and then
        re-raised to the caller.
        """
        try:
            super().start()
        # pylint: disable=broad-exception-caught
        except Exception as e:
            logger.error(
                "Failed to start thread %s: %r", self.name, e, exc_info=True
            )
            self.__on_error_cb(e)
            raise
