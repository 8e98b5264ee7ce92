"""Threading utils for lanbeacon: tracked threads, watchers, wake signals."""

from lanbeacon.threading.atomic import Atomic
from lanbeacon.threading.error_watcher import ErrorWatcher
from lanbeacon.threading.thread_watcher import ThreadWatcher
from lanbeacon.threading.throwing_thread import ThrowingThread
from lanbeacon.threading.wake_signal import WakeSignal

__all__ = [
    "Atomic",
    "ErrorWatcher",
    "ThreadWatcher",
    "ThrowingThread",
    "WakeSignal",
]
