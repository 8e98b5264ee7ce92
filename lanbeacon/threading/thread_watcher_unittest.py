import threading
import time
from typing import List

import pytest

from lanbeacon.threading.thread_watcher import ThreadWatcher
from lanbeacon.threading.throwing_thread import ThrowingThread


class ExcOne(Exception):
    pass


class ExcFromTarget(Exception):
    pass


class TestThreadWatcher:
    def setup_method(self) -> None:
        self.watcher = ThreadWatcher()

    def test_check_for_exception_without_errors_is_noop(self) -> None:
        self.watcher.check_for_exception()
        assert self.watcher.exceptions == []

    def test_on_exception_seen_and_check(self) -> None:
        self.watcher.on_exception_seen(ExcOne("Test error 1"))

        with pytest.raises(ExcOne, match="Test error 1"):
            self.watcher.check_for_exception()

    def test_first_exception_wins(self) -> None:
        self.watcher.on_exception_seen(ExcOne("first"))
        self.watcher.on_exception_seen(ExcFromTarget("second"))

        with pytest.raises(ExcOne):
            self.watcher.check_for_exception()
        assert len(self.watcher.exceptions) == 2

    @pytest.mark.timeout(5)
    def test_run_until_exception_unblocks(self) -> None:
        thread_exceptions: List[Exception] = []

        def run_watcher() -> None:
            try:
                self.watcher.run_until_exception()
            except ExcOne as e:
                thread_exceptions.append(e)

        watcher_thread = threading.Thread(target=run_watcher)
        watcher_thread.start()
        time.sleep(0.01)
        assert watcher_thread.is_alive()

        self.watcher.on_exception_seen(ExcOne("late"))
        watcher_thread.join(timeout=1.0)

        assert not watcher_thread.is_alive()
        assert len(thread_exceptions) == 1

    @pytest.mark.timeout(5)
    def test_tracked_thread_reports_to_watcher(self) -> None:
        def target() -> None:
            raise ExcFromTarget("boom")

        thread = self.watcher.create_tracked_thread(target, name="tracked")
        assert isinstance(thread, ThrowingThread)
        assert thread.daemon
        assert thread.name == "tracked"

        thread.start()
        thread.join(1.0)

        with pytest.raises(ExcFromTarget, match="boom"):
            self.watcher.check_for_exception()

    @pytest.mark.timeout(5)
    def test_tracked_thread_runs_target(self) -> None:
        ran = threading.Event()
        thread = self.watcher.create_tracked_thread(ran.set)
        thread.start()
        thread.join(1.0)

        assert ran.is_set()
        self.watcher.check_for_exception()
