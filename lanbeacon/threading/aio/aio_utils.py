"""Helpers for handing work to the event loop a discovery component owns.

Callers on application threads use `run_on_event_loop` to run socket setup
and teardown on the loop thread and wait for the result.
"""

import asyncio
import concurrent.futures
from asyncio import AbstractEventLoop
from collections.abc import Callable
from typing import Any, Coroutine, Optional, ParamSpec, TypeVar


def is_running_on_event_loop(
    event_loop: Optional[AbstractEventLoop] = None,
) -> bool:
    """
    Returns true if the caller is on the SPECIFIC |event_loop|, or on ANY
    event loop if |event_loop| is None.
    """
    try:
        current_loop = asyncio.get_running_loop()
        return event_loop is None or current_loop == event_loop
    except RuntimeError:
        return False


P = ParamSpec("P")
T = TypeVar("T")


def run_on_event_loop(
    call: Callable[P, Coroutine[Any, Any, T]],
    event_loop: AbstractEventLoop,
    *args: P.args,
    **kwargs: P.kwargs,
) -> concurrent.futures.Future[T]:
    """
    Runs a coroutine function on |event_loop| from any thread.

    Args:
        call: The coroutine function to execute.
        event_loop: Loop to run it on.
        *args: Positional arguments for the coroutine.
        **kwargs: Keyword arguments for the coroutine.

    Returns:
        A future for the coroutine's result.

    Raises:
        RuntimeError: If |event_loop| is closed.
    """
    if event_loop.is_closed():
        raise RuntimeError("Cannot schedule work on a closed event loop.")

    coro_obj = call(*args, **kwargs)
    try:
        return asyncio.run_coroutine_threadsafe(coro_obj, event_loop)
    except RuntimeError:
        coro_obj.close()
        raise
