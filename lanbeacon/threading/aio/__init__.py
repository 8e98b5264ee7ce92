"""AsyncIO utilities for lanbeacon threading."""

from lanbeacon.threading.aio.aio_utils import (
    is_running_on_event_loop,
    run_on_event_loop,
)
from lanbeacon.threading.aio.event_loop_factory import EventLoopFactory

__all__ = [
    "EventLoopFactory",
    "is_running_on_event_loop",
    "run_on_event_loop",
]
