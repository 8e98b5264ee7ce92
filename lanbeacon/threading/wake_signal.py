"""Defines WakeSignal, an interruptible auto-reset wait."""

import threading
from typing import Optional


class WakeSignal:
    """
    An auto-reset event: `set()` releases exactly one pending or future
    `wait()`, after which the signal is cleared again.

    Periodic loops sleep on this instead of `time.sleep()` so that start,
    stop and dispose requests take effect immediately rather than after the
    remainder of the interval.
    """

    def __init__(self) -> None:
        self.__condition = threading.Condition()
        self.__is_set = False

    def set(self) -> None:
        """Signals the waiter. Any thread."""
        with self.__condition:
            self.__is_set = True
            self.__condition.notify()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Blocks until signalled or until |timeout| seconds elapse.

        Returns:
            True if woken by `set()`, False on timeout. The signal is
            consumed either way.
        """
        with self.__condition:
            signalled = self.__condition.wait_for(
                lambda: self.__is_set, timeout=timeout
            )
            self.__is_set = False
            return signalled

    def is_set(self) -> bool:
        with self.__condition:
            return self.__is_set
