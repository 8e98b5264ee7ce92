import threading
import time

import pytest

from lanbeacon.threading.wake_signal import WakeSignal


def test_wait_times_out_when_not_set() -> None:
    signal = WakeSignal()
    start = time.monotonic()
    assert signal.wait(0.05) is False
    assert time.monotonic() - start >= 0.04


def test_set_before_wait_returns_immediately() -> None:
    signal = WakeSignal()
    signal.set()
    assert signal.is_set()
    assert signal.wait(5.0) is True


def test_signal_auto_resets() -> None:
    signal = WakeSignal()
    signal.set()
    assert signal.wait(0) is True
    assert not signal.is_set()
    assert signal.wait(0.01) is False


@pytest.mark.timeout(5)
def test_set_wakes_blocked_waiter_early() -> None:
    signal = WakeSignal()
    results: list[bool] = []
    waiting = threading.Event()

    def waiter() -> None:
        waiting.set()
        results.append(signal.wait(30.0))

    thread = threading.Thread(target=waiter)
    thread.start()
    waiting.wait()
    time.sleep(0.02)

    start = time.monotonic()
    signal.set()
    thread.join(2.0)

    assert not thread.is_alive()
    assert results == [True]
    assert time.monotonic() - start < 2.0
