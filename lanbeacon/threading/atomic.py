"""
Provides generic `Atomic[AtomicTypeT]` for lock-guarded value access.

Used by the discovery components for the flags (running, disposed) that are
flipped from caller threads and read from background threads.
"""

import threading
from typing import Generic, TypeVar

# Type variable for the generic type stored in Atomic.
AtomicTypeT = TypeVar("AtomicTypeT")


class Atomic(Generic[AtomicTypeT]):
    """
    Wraps a value so that reads, writes and swaps of it are serialized by a
    lock. Protects the reference only, not the internal state of a mutable
    value.
    """

    def __init__(self, value: AtomicTypeT) -> None:
        """
        Args:
            value: The initial value.
        """
        self.__value: AtomicTypeT = value
        self.__lock = threading.Lock()

    def set(self, value: AtomicTypeT) -> None:
        """Atomically replaces the stored value."""
        with self.__lock:
            self.__value = value

    def get(self) -> AtomicTypeT:
        """Atomically reads the stored value."""
        with self.__lock:
            return self.__value

    def exchange(self, value: AtomicTypeT) -> AtomicTypeT:
        """
        Atomically stores |value| and returns the value it replaced.

        Lets idempotent toggles such as start() / stop() detect whether this
        call is the one that actually changed the state.
        """
        with self.__lock:
            previous = self.__value
            self.__value = value
            return previous
