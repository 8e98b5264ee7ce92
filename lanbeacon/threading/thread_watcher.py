"""
Defines the `ThreadWatcher` class.

`ThreadWatcher` creates the background threads used by advertisers and
probers (via `ThrowingThread`) and records any exception that escapes them,
so a failure on an I/O thread can be observed from the application thread.
"""

import threading
from collections.abc import Callable
from typing import List, Optional

from lanbeacon.threading.error_watcher import ErrorWatcher
from lanbeacon.threading.throwing_thread import ThrowingThread


class ThreadWatcher(ErrorWatcher):
    """
    Creates tracked threads and surfaces exceptions raised on them.

    One watcher may be shared by any number of components.
    """

    def __init__(self) -> None:
        self.__barrier = threading.Event()
        self.__exceptions_lock = threading.Lock()
        self.__exceptions: List[Exception] = []

    def create_tracked_thread(
        self,
        target: Callable[[], None],
        is_daemon: bool = True,
        name: Optional[str] = None,
    ) -> threading.Thread:
        """
        Creates a `ThrowingThread` whose exceptions are reported here.

        Args:
            target: Callable invoked when the thread starts.
            is_daemon: Whether the thread is a daemon thread.
            name: Optional thread name.

        Returns:
            The created, not yet started, thread.
        """
        return ThrowingThread(
            target=target,
            on_error_cb=self.on_exception_seen,
            daemon=is_daemon,
            name=name,
        )

    def run_until_exception(self) -> None:
        """
        Blocks until an exception is reported, then raises the first one.
        Thread-safe.
        """
        while True:
            self.__barrier.wait()
            with self.__exceptions_lock:
                if not self.__exceptions:
                    self.__barrier.clear()
                    continue

                raise self.__exceptions[0]

    def check_for_exception(self) -> None:
        """Raises the first reported exception, if any. Non-blocking."""
        if not self.__barrier.is_set():
            return

        with self.__exceptions_lock:
            if not self.__exceptions:
                return

            raise self.__exceptions[0]

    @property
    def exceptions(self) -> List[Exception]:
        """A copy of every exception reported so far, oldest first."""
        with self.__exceptions_lock:
            return list(self.__exceptions)

    def on_exception_seen(self, e: Exception) -> None:
        """
        Records |e| and wakes anyone blocked in `run_until_exception`.

        Args:
            e: The exception caught on a tracked thread or event loop.
        """
        with self.__exceptions_lock:
            self.__exceptions.append(e)
            self.__barrier.set()
