"""Defines Disposable, the lifecycle interface of discovery components."""

from abc import ABC, abstractmethod
from types import TracebackType
from typing import Optional, Type, TypeVar

DisposableT = TypeVar("DisposableT", bound="Disposable")


class Disposable(ABC):
    """An object holding sockets and threads that must be released.

    Subclasses implement `dispose()`; this base adds context-manager
    support so a component can be scoped with `with`.
    """

    @abstractmethod
    def dispose(self) -> None:
        """Releases every resource. Must be idempotent."""

    def __enter__(self: DisposableT) -> DisposableT:
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.dispose()
