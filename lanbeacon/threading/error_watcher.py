"""Defines the `ErrorWatcher` interface."""

from abc import ABC, abstractmethod


# pylint: disable=too-few-public-methods
class ErrorWatcher(ABC):
    """
    Interface for objects that collect exceptions raised on background
    threads and re-raise them on a thread of the caller's choosing.
    """

    @abstractmethod
    def run_until_exception(self) -> None:
        """
        Blocks until an exception has been seen, then raises it.

        Raises:
            Exception: The first exception reported to this watcher.
        """

    @abstractmethod
    def check_for_exception(self) -> None:
        """
        Raises the first exception reported to this watcher, if any. Never
        blocks.
        """
